"""
Self-describing encoding over msgpack.

Collection particles (lists and maps) travel as msgpack documents. Typed
scalars that msgpack cannot distinguish on its own (strings, blobs,
GeoJSON) are written as extension types whose code is the particle type.
"""

from typing import Any, Callable, Optional

import msgpack


class Packer:
    """Accumulating msgpack writer used by ``Value.pack``."""

    def __init__(self):
        self._packer = msgpack.Packer(autoreset=False, use_bin_type=True)

    def write_nil(self) -> None:
        self._packer.pack(None)

    def write(self, obj: Any) -> None:
        """Write a native scalar (int, float, bool)."""
        self._packer.pack(obj)

    def write_array_header(self, length: int) -> None:
        self._packer.pack_array_header(length)

    def write_map_header(self, length: int) -> None:
        self._packer.pack_map_header(length)

    def write_ext(self, code: int, data: bytes) -> None:
        """Write an extension-tagged payload."""
        self._packer.pack(msgpack.ExtType(int(code), bytes(data)))

    def bytes(self) -> bytes:
        """Everything written so far."""
        return self._packer.bytes()


def unpack(data: bytes, ext_hook: Optional[Callable[[int, bytes], Any]] = None) -> Any:
    """Decode one msgpack document.

    Map keys may be any scalar the codec accepts as a key, so strict
    string-only map keys are disabled.
    """
    kwargs = {"raw": False, "strict_map_key": False}
    if ext_hook is not None:
        kwargs["ext_hook"] = ext_hook
    return msgpack.unpackb(data, **kwargs)
