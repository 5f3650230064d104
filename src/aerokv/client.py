"""
AeroKV cluster client: seed bootstrap and partition routing.
"""

import codecs
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import structlog

from .connection import InfoConnection, fetch_info_value
from .constants import INFO_REPLICAS_MASTER
from .errors import AeroKVError, ConfigurationError, ConnectionError
from .host import Host
from .node_validator import NodeIdentity, bootstrap
from .partition import Partition, PartitionTable
from .value import set_encoding

logger = structlog.get_logger(__name__)


@dataclass
class ClientConfig:
    """Configuration for the AeroKV client."""

    # Cluster settings
    seeds: List[Host] = field(default_factory=lambda: [Host("localhost")])
    timeout_ms: int = 1000

    # Protocol settings
    encoding: str = "utf-8"
    partition_info_key: str = INFO_REPLICAS_MASTER

    def validate(self) -> None:
        """Validate configuration."""
        if not self.seeds:
            raise ConfigurationError("At least one seed host is required", field="seeds")

        if self.timeout_ms <= 0:
            raise ConfigurationError("Timeout must be positive", field="timeout_ms")

        try:
            codecs.lookup(self.encoding)
        except LookupError:
            raise ConfigurationError(f"Unknown text encoding: {self.encoding}", field="encoding")

        if not self.partition_info_key:
            raise ConfigurationError("Partition info key is required", field="partition_info_key")


@dataclass(frozen=True)
class Node:
    """A validated cluster node."""

    name: str
    host: Host
    supports_new_info: bool = True
    aliases: Tuple[Host, ...] = ()

    @classmethod
    def from_identity(cls, identity: NodeIdentity) -> "Node":
        if not identity.is_valid or identity.address is None:
            raise ConnectionError("Node identity has no name")
        return cls(
            name=identity.name,
            host=identity.address,
            supports_new_info=identity.supports_new_info,
            aliases=identity.aliases,
        )

    def __str__(self) -> str:
        return f"{self.name} {self.host}"


class AeroKVClient:
    """Cluster client holding validated nodes and the partition map."""

    def __init__(self, config: ClientConfig):
        """Initialize client with configuration."""
        config.validate()
        self.config = config
        self.partitions = PartitionTable()
        self._nodes: Dict[str, Node] = {}

        set_encoding(config.encoding)
        logger.info("AeroKV client initialized", seeds=[str(s) for s in config.seeds])

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    def get_node(self, name: str) -> Optional[Node]:
        return self._nodes.get(name)

    async def connect(self) -> None:
        """Validate every seed, then load partition ownership from each node."""
        for seed in self.config.seeds:
            identity = await bootstrap(seed, self.config.timeout_ms)
            if not identity.is_valid:
                logger.warning("Seed host did not validate", seed=str(seed))
                continue

            node = Node.from_identity(identity)
            if node.name not in self._nodes:
                self._nodes[node.name] = node
                logger.info("Node added", node=node.name, host=str(node.host))

        if not self._nodes:
            raise ConnectionError(
                "Failed to connect to any seed host",
                endpoint=",".join(str(s) for s in self.config.seeds)
            )

        for node in self.nodes:
            try:
                await self.refresh_partitions(node)
            except AeroKVError as e:
                logger.error("Partition refresh failed", node=node.name, error=str(e))

    async def refresh_partitions(self, node: Node) -> int:
        """Run one partition refresh for ``node``.

        Returns the number of partitions the node reported as master.
        """
        logger.debug("Refreshing partitions", node=node.name, new_info=node.supports_new_info)
        async with InfoConnection(node.host, self.config.timeout_ms) as conn:
            response = await fetch_info_value(conn, self.config.partition_info_key)
        return self.partitions.update(node, response)

    def node_for(self, namespace: str, digest: bytes) -> Optional[Node]:
        """Master node for a record digest, from the current snapshot."""
        return self.partitions.get_node(Partition.from_digest(namespace, digest))

    async def close(self) -> None:
        """Forget all nodes and partition ownership."""
        self._nodes.clear()
        self.partitions.publish({})
        logger.info("AeroKV client closed")


class ClientBuilder:
    """Builder for creating AeroKV clients."""

    def __init__(self):
        self.config = ClientConfig()

    def seeds(self, *hosts: Union[Host, str]) -> "ClientBuilder":
        """Set the seed hosts. Strings may hold a comma separated list."""
        seeds: List[Host] = []
        for h in hosts:
            if isinstance(h, Host):
                seeds.append(h)
            else:
                seeds.extend(Host.parse_list(h))
        self.config.seeds = seeds
        return self

    def timeout(self, timeout_ms: int) -> "ClientBuilder":
        """Set the connect and info timeout."""
        self.config.timeout_ms = timeout_ms
        return self

    def encoding(self, encoding: str) -> "ClientBuilder":
        """Set the text encoding for string particles."""
        self.config.encoding = encoding
        return self

    def partition_info_key(self, key: str) -> "ClientBuilder":
        """Set the info key queried for partition ownership."""
        self.config.partition_info_key = key
        return self

    def build(self) -> AeroKVClient:
        """Build the client."""
        return AeroKVClient(self.config)
