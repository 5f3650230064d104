"""
Records returned by reads: bins plus storage metadata.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .value import bytes_to_particle


@dataclass(frozen=True)
class Record:
    """A stored record.

    ``generation`` counts writes to the record and ``expiration`` is the
    server's expiry time in seconds. ``dups`` holds duplicate versions when
    the server returned more than one.
    """

    key: Any
    bins: Dict[str, Any] = field(default_factory=dict)
    generation: int = 0
    expiration: int = 0
    node: Optional[Any] = None
    dups: Optional[List["Record"]] = None

    @classmethod
    def from_particles(
        cls,
        key: Any,
        particles: Iterable[Tuple[str, int, Union[bytes, bytearray, memoryview]]],
        generation: int = 0,
        expiration: int = 0,
        node: Optional[Any] = None,
    ) -> "Record":
        """Build a record from ``(bin name, particle type, payload)`` triples.

        A later bin with the same name replaces an earlier one.
        """
        bins = {}
        for name, particle_type, data in particles:
            bins[name] = bytes_to_particle(particle_type, data, 0, len(data))
        return cls(key, bins, generation, expiration, node)

    def get(self, name: str, default: Any = None) -> Any:
        return self.bins.get(name, default)

    def __str__(self) -> str:
        return (
            f"key: `{self.key}` bins: `{self.bins}` "
            f"generation: `{self.generation}` expiration: `{self.expiration}`"
        )
