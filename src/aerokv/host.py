"""
Server host addresses.
"""

from dataclasses import dataclass
from typing import List

from .errors import ConfigurationError

DEFAULT_PORT = 3000


@dataclass(frozen=True)
class Host:
    """A server address: host name or IP literal plus port."""

    name: str
    port: int = DEFAULT_PORT

    @classmethod
    def parse(cls, text: str, default_port: int = DEFAULT_PORT) -> "Host":
        """Parse ``host``, ``host:port`` or ``[v6addr]:port``."""
        text = text.strip()
        if not text:
            raise ConfigurationError("Empty host string", field="hosts")

        if text.startswith("["):
            end = text.find("]")
            if end < 0:
                raise ConfigurationError(f"Invalid IPv6 host: {text}", field="hosts")
            name = text[1:end]
            rest = text[end + 1:]
            if rest and not rest.startswith(":"):
                raise ConfigurationError(f"Invalid host: {text}", field="hosts")
            port_str = rest[1:]
        elif text.count(":") == 1:
            name, port_str = text.split(":")
        else:
            name, port_str = text, ""

        if not port_str:
            return cls(name, default_port)

        try:
            port = int(port_str)
        except ValueError:
            raise ConfigurationError(f"Invalid port in host: {text}", field="hosts")
        if port <= 0 or port > 65535:
            raise ConfigurationError(f"Port out of range in host: {text}", field="hosts")
        return cls(name, port)

    @classmethod
    def parse_list(cls, text: str, default_port: int = DEFAULT_PORT) -> List["Host"]:
        """Parse a comma separated host list."""
        return [cls.parse(part, default_port) for part in text.split(",") if part.strip()]

    def __str__(self) -> str:
        if ":" in self.name:
            return f"[{self.name}]:{self.port}"
        return f"{self.name}:{self.port}"
