"""
Node identity discovery for a seed host.
"""

import asyncio
import re
import socket
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Tuple

import structlog

from .connection import InfoConnection
from .constants import INFO_BUILD, INFO_NODE
from .errors import ConnectionError, ParseError, TimeoutError
from .host import Host

logger = structlog.get_logger(__name__)

_VERSION_PATTERN = re.compile(r"(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+).*", re.DOTALL)


@dataclass(frozen=True)
class NodeIdentity:
    """What a seed host told us about itself."""

    name: Optional[str] = None
    supports_new_info: bool = True
    aliases: Tuple[Host, ...] = field(default_factory=tuple)
    address: Optional[Host] = None
    build: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        """An unnamed identity means no alias answered."""
        return self.name is not None


def parse_version_string(version: str) -> Tuple[int, int, int]:
    """Extract ``(major, minor, patch)`` from a build string such as ``5.1.0 ce``."""
    match = _VERSION_PATTERN.match(version)
    if match is None:
        raise ParseError(f"Invalid build version string in Info: {version}", response=version[:200])
    return int(match.group("major")), int(match.group("minor")), int(match.group("patch"))


def supports_new_info(major: int, minor: int, patch: int) -> bool:
    """Servers from 2.6.6 on speak the newer info protocol."""
    return major > 2 or (major == 2 and (minor > 6 or (minor == 6 and patch >= 6)))


async def resolve_aliases(host: Host) -> List[Host]:
    """Resolve ``host`` to every address it names, keeping its port."""
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(host.name, host.port, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        logger.warning("Host resolution failed", host=host.name, error=str(e))
        return []

    aliases = []
    for _family, _type, _proto, _canonname, sockaddr in infos:
        alias = Host(sockaddr[0], host.port)
        if alias not in aliases:
            aliases.append(alias)
    return aliases


async def bootstrap(
    seed: Host,
    timeout_ms: int,
    resolver: Callable[[Host], Awaitable[List[Host]]] = resolve_aliases,
    connection_factory: Callable[[Host, int], InfoConnection] = InfoConnection,
) -> NodeIdentity:
    """Ask every alias of ``seed`` for its node name and build.

    Unreachable aliases are skipped. A malformed build string raises
    ParseError and ends the whole attempt. When several aliases answer,
    the last answer wins. The result is unnamed if none answered.
    """
    aliases = await resolver(seed)
    logger.debug("Node validator resolved aliases", seed=str(seed), aliases=len(aliases))

    name = None
    new_info = True
    address = None
    build = None

    for alias in aliases:
        conn = connection_factory(alias, timeout_ms)
        try:
            try:
                await conn.connect()
                info = await conn.request_info(INFO_NODE, INFO_BUILD)
            except (ConnectionError, TimeoutError) as e:
                logger.warning("Node alias unreachable", alias=str(alias), error=str(e))
                continue

            node_name = info.get(INFO_NODE)
            if node_name:
                name = node_name
                address = alias

                build = info.get(INFO_BUILD) or None
                if build:
                    new_info = supports_new_info(*parse_version_string(build))
        finally:
            await conn.close()

    identity = NodeIdentity(
        name=name,
        supports_new_info=new_info,
        aliases=tuple(aliases),
        address=address,
        build=build,
    )
    if identity.is_valid:
        logger.info("Node validated", seed=str(seed), node=name, build=build, new_info=new_info)
    else:
        logger.warning("Node validation failed", seed=str(seed), aliases=len(aliases))
    return identity
