"""
Info protocol connection.

The info protocol is a text key/value exchange used for cluster metadata.
Each message is an 8-byte header (protocol version, message type, 48-bit
body length) followed by the body. Requests list one key name per line;
replies hold one ``name<TAB>value`` line per key.
"""

import asyncio
import struct
from typing import Dict, Optional

import structlog

from .errors import ConnectionError, TimeoutError
from .host import Host

logger = structlog.get_logger(__name__)

PROTO_VERSION = 2
MSG_TYPE_INFO = 1
HEADER_SIZE = 8
_SIZE_MASK = (1 << 48) - 1


def encode_info_request(*names: str) -> bytes:
    """Frame an info request for ``names``."""
    body = "".join(f"{name}\n" for name in names).encode("utf-8")
    header = (PROTO_VERSION << 56) | (MSG_TYPE_INFO << 48) | len(body)
    return struct.pack(">Q", header) + body


def decode_info_header(header: bytes) -> int:
    """Return the body length announced by an info header."""
    if len(header) != HEADER_SIZE:
        raise ConnectionError(f"Info header must be {HEADER_SIZE} bytes, got {len(header)}")
    value = struct.unpack(">Q", header)[0]
    version = value >> 56
    msg_type = (value >> 48) & 0xFF
    if version != PROTO_VERSION or msg_type != MSG_TYPE_INFO:
        raise ConnectionError(f"Unexpected info header: version={version} type={msg_type}")
    return value & _SIZE_MASK


def parse_info_response(text: str) -> Dict[str, str]:
    """Split an info reply into a name to value mapping.

    A line without a tab names a key with an empty value.
    """
    result = {}
    for line in text.split("\n"):
        if not line:
            continue
        name, _, value = line.partition("\t")
        result[name] = value
    return result


class InfoConnection:
    """Short-lived connection to one server address for info queries."""

    def __init__(self, host: Host, timeout_ms: int):
        self.host = host
        self.timeout_ms = timeout_ms
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    @property
    def endpoint(self) -> str:
        return str(self.host)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self) -> None:
        """Open the socket within the configured timeout."""
        if self._writer is not None:
            return

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host.name, self.host.port),
                timeout=self.timeout_ms / 1000.0
            )
        except asyncio.TimeoutError:
            raise TimeoutError(f"Connection timeout to {self.endpoint}", timeout_ms=self.timeout_ms)
        except OSError as e:
            raise ConnectionError(f"Failed to connect to {self.endpoint}: {e}", endpoint=self.endpoint)

        logger.debug("Info connection established", endpoint=self.endpoint)

    async def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("Error while closing info connection", endpoint=self.endpoint, error=str(e))

    async def request_info(self, *names: str) -> Dict[str, str]:
        """Query ``names`` and return the reply mapping."""
        if self._writer is None or self._reader is None:
            raise ConnectionError("Connection not established", endpoint=self.endpoint)

        try:
            return await asyncio.wait_for(self._exchange(names), timeout=self.timeout_ms / 1000.0)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Info request timeout to {self.endpoint}", timeout_ms=self.timeout_ms)
        except (OSError, asyncio.IncompleteReadError) as e:
            raise ConnectionError(f"Info request to {self.endpoint} failed: {e}", endpoint=self.endpoint)

    async def _exchange(self, names) -> Dict[str, str]:
        self._writer.write(encode_info_request(*names))
        await self._writer.drain()

        header = await self._reader.readexactly(HEADER_SIZE)
        size = decode_info_header(header)
        body = await self._reader.readexactly(size) if size else b""
        return parse_info_response(body.decode("utf-8", errors="replace"))


async def fetch_info_value(conn: InfoConnection, name: str) -> str:
    """Query a single info key; a missing or empty value is an error."""
    info = await conn.request_info(name)
    value = info.get(name)
    if not value:
        raise ConnectionError(f"{name} is empty", endpoint=conn.endpoint)
    return value
