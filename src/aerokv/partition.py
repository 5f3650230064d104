"""
Partition ownership: parsing the ``replicas-master`` info value and
maintaining the namespace to node routing table.

Readers never lock. The table's outer mapping is replaced wholesale when
a namespace appears, and a new mapping is only published once every slot
for the current update has been written.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Union

import structlog

from .constants import PARTITIONS
from .errors import ParseError

logger = structlog.get_logger(__name__)

MAX_NAMESPACE_LENGTH = 31
MAX_RESPONSE_DIAGNOSTIC = 200

_PARTITION_ID = re.compile(r"[0-9]+")
_MAX_PARTITION_ID_DIGITS = len(str(PARTITIONS - 1))


@dataclass(frozen=True)
class Partition:
    """One shard of a namespace."""

    namespace: str
    partition_id: int

    @classmethod
    def from_digest(cls, namespace: str, digest: bytes) -> "Partition":
        """Partition owning a record digest.

        The id is the first four digest bytes read as a little-endian
        unsigned integer, masked to the partition count.
        """
        if len(digest) < 4:
            raise ParseError(f"Digest too short: {len(digest)} bytes")
        partition_id = int.from_bytes(bytes(digest[:4]), "little") & (PARTITIONS - 1)
        return cls(namespace, partition_id)

    def __str__(self) -> str:
        return f"{self.namespace}:{self.partition_id}"


class PartitionParser:
    """Forward-only scanner over ``ns1:id1;ns2:id2;...\\n``."""

    def __init__(self, response: Union[str, bytes, None]):
        if isinstance(response, (bytes, bytearray)):
            response = bytes(response).decode("utf-8", errors="replace")
        if not response:
            raise ParseError("Partition info response is empty", response="")

        self._buffer = response
        self._length = len(response)
        self._offset = 0

    def __iter__(self) -> Iterator[Partition]:
        while True:
            partition = self.next_partition()
            if partition is None:
                return
            yield partition

    def partitions(self) -> List[Partition]:
        """Scan the remaining input."""
        return list(self)

    def next_partition(self) -> Optional[Partition]:
        """Return the next entry, or None at end of input."""
        begin = self._offset

        while self._offset < self._length:
            if self._buffer[self._offset] == ":":
                namespace = self._buffer[begin:self._offset].strip()

                size = len(namespace.encode("utf-8"))
                if size <= 0 or size > MAX_NAMESPACE_LENGTH:
                    raise ParseError(
                        f"Invalid partition namespace {namespace}. Response={self._truncated_response()}",
                        response=self._truncated_response(),
                    )

                self._offset += 1
                begin = self._offset

                while self._offset < self._length:
                    if self._buffer[self._offset] in ";\n":
                        break
                    self._offset += 1

                if self._offset == begin:
                    raise ParseError(
                        f"Empty partition id for namespace {namespace}. Response={self._truncated_response()}",
                        response=self._truncated_response(),
                    )

                token = self._buffer[begin:self._offset].strip()
                digits = token.lstrip("0") or "0"
                if (not _PARTITION_ID.fullmatch(token) or len(digits) > _MAX_PARTITION_ID_DIGITS
                        or int(digits) >= PARTITIONS):
                    raise ParseError(
                        f"Invalid partition id {token} for namespace {namespace}. "
                        f"Response={self._truncated_response()}",
                        response=self._truncated_response(),
                    )

                self._offset += 1
                return Partition(namespace, int(digits))

            self._offset += 1

        if self._buffer[begin:].strip():
            raise ParseError(
                f"Truncated partition entry at offset {begin}. Response={self._truncated_response()}",
                response=self._truncated_response(),
            )
        return None

    def update_partition(self, nmap: Mapping[str, List[Any]], node: Any) -> Mapping[str, List[Any]]:
        """Parse everything, then merge it into ``nmap`` for ``node``."""
        return merge(nmap, self.partitions(), node)

    def _truncated_response(self) -> str:
        raw = self._buffer.encode("utf-8")
        if len(raw) <= MAX_RESPONSE_DIAGNOSTIC:
            return self._buffer
        return raw[:MAX_RESPONSE_DIAGNOSTIC].decode("utf-8", errors="ignore")


def merge(nmap: Mapping[str, List[Any]], partitions: Iterable[Partition], node: Any) -> Mapping[str, List[Any]]:
    """Assign ``node`` as owner of each partition.

    The outer mapping is shallow-copied once, on the first namespace not
    already present; slot lists of existing namespaces are shared with the
    copy and written in place. Returns ``nmap`` itself when no namespace
    was added.
    """
    amap = nmap
    copied = False

    for partition in partitions:
        node_array = amap.get(partition.namespace)

        if node_array is None:
            if not copied:
                amap = dict(nmap)
                copied = True
            node_array = [None] * PARTITIONS
            amap[partition.namespace] = node_array

        node_array[partition.partition_id] = node

    return amap


class PartitionTable:
    """Holder of the published partition map snapshot."""

    def __init__(self):
        self._map: Mapping[str, List[Any]] = {}

    def snapshot(self) -> Mapping[str, List[Any]]:
        """Read-only view of the current map."""
        return MappingProxyType(self._map)

    def publish(self, nmap: Mapping[str, List[Any]]) -> None:
        self._map = nmap

    def update(self, node: Any, response: Union[str, bytes]) -> int:
        """Apply one ``replicas-master`` response for ``node``.

        Callers must not run two updates for the same table concurrently.
        Returns the number of partitions parsed.
        """
        partitions = PartitionParser(response).partitions()
        current = self._map
        updated = merge(current, partitions, node)
        if updated is not current:
            self.publish(updated)
            logger.info("Partition map namespaces added",
                        namespaces=sorted(set(updated) - set(current)),
                        node=str(node))

        logger.debug("Partition map updated", node=str(node), partitions=len(partitions))
        return len(partitions)

    def get_node(self, partition: Partition) -> Optional[Any]:
        """Owner of ``partition`` in the current snapshot, if known."""
        slots = self._map.get(partition.namespace)
        if slots is None:
            return None
        return slots[partition.partition_id]

    def namespaces(self) -> List[str]:
        return sorted(self._map)
