"""
Polymorphic value classes used to serialize application values into the
wire protocol, and the particle decoders used to read them back.
"""

import codecs
import struct
from typing import Any, Mapping, Optional, Union

import orjson

from .constants import EXT_INFINITY, EXT_WILDCARD, ParticleType
from .errors import ConfigurationError, ParameterError, SerializationError, TypeNotSupported
from .packer import Packer, unpack

_UINT64_MASK = (1 << 64) - 1
_INT64_MIN = -(1 << 63)
_INT64_LIMIT = 1 << 63
_UINT64_LIMIT = 1 << 64

_encoding = "utf-8"


def get_encoding() -> str:
    """Text encoding used for string particles."""
    return _encoding


def set_encoding(encoding: str) -> None:
    """Change the text encoding used for string particles."""
    global _encoding
    try:
        codecs.lookup(encoding)
    except LookupError:
        raise ConfigurationError(f"Unknown text encoding: {encoding}", field="encoding")
    _encoding = encoding


def _write_binary(buffer: bytearray, offset: int, data: bytes) -> int:
    end = offset + len(data)
    if offset < 0 or end > len(buffer):
        raise ParameterError(
            f"Buffer too small: need {end} bytes, have {len(buffer)}"
        )
    buffer[offset:end] = data
    return len(data)


class GeoJSON:
    """A GeoJSON document, kept as its JSON text."""

    def __init__(self, json: Union[str, bytes, Mapping[str, Any]]):
        if isinstance(json, Mapping):
            self._json = orjson.dumps(dict(json)).decode("utf-8")
        elif isinstance(json, (bytes, bytearray)):
            self._json = bytes(json).decode("utf-8")
        else:
            self._json = json

    def to_json(self) -> str:
        return self._json

    def to_dict(self) -> Optional[dict]:
        """Parsed document, or None if the text is not valid JSON."""
        try:
            return orjson.loads(self._json)
        except orjson.JSONDecodeError:
            return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeoJSON):
            return NotImplemented
        return self._json == other._json

    def __hash__(self) -> int:
        return hash(self._json)

    def __str__(self) -> str:
        return self._json

    def __repr__(self) -> str:
        return f"GeoJSON({self._json!r})"


class Value:
    """Base class of all wire values.

    Subclasses are immutable once constructed. ``Value.of`` is the only
    supported way to turn a native Python object into a wire value.
    """

    __slots__ = ()

    @staticmethod
    def of(value: Any, allow_64bits: bool = False) -> "Value":
        """Classify a native value into its wire representation.

        Integers must fit in 63 bits plus sign unless ``allow_64bits`` is
        set, in which case the full unsigned 64-bit range is accepted (used
        by bitwise operations).
        """
        # bool is a subclass of int and must be matched first
        if value is None:
            return NULL
        if isinstance(value, bool):
            return BoolValue(value)
        if isinstance(value, int):
            limit = _UINT64_LIMIT if allow_64bits else _INT64_LIMIT
            if _INT64_MIN <= value < limit:
                return IntegerValue(value)
            raise TypeNotSupported(
                f"Value type {type(value).__name__} not supported with more than 64 bits.",
                value_type=type(value).__name__,
            )
        if isinstance(value, float):
            return FloatValue(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return BytesValue(value)
        if isinstance(value, str):
            return StringValue(value)
        if isinstance(value, Value):
            return value
        if isinstance(value, dict):
            return MapValue(value)
        if isinstance(value, (list, tuple)):
            return ListValue(value)
        if isinstance(value, GeoJSON):
            return GeoJSONValue(value)
        raise TypeNotSupported(
            f"Value type {type(value).__name__} not supported.",
            value_type=type(value).__name__,
        )

    @staticmethod
    def validate_key(value: Any) -> None:
        """Raise TypeNotSupported unless ``value`` may be used as a map key."""
        if value is None or isinstance(value, (float, str)):
            return
        if isinstance(value, int) and not isinstance(value, bool) and _INT64_MIN <= value < _INT64_LIMIT:
            return
        raise TypeNotSupported(
            f"Value type {type(value).__name__} not supported as hash key.",
            value_type=type(value).__name__,
        )

    @property
    def particle_type(self) -> ParticleType:
        raise NotImplementedError

    def get(self) -> Any:
        raise NotImplementedError

    def estimate_size(self) -> int:
        """Bytes ``write`` will emit."""
        raise NotImplementedError

    def write(self, buffer: bytearray, offset: int) -> int:
        """Write the fixed layout into ``buffer`` and return the byte count."""
        raise NotImplementedError

    def pack(self, packer: Packer) -> None:
        """Write the self-describing form."""
        raise NotImplementedError

    def to_bytes(self) -> bytes:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.get()!r})"


class NullValue(Value):
    """Empty value."""

    __slots__ = ()

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.NULL

    def get(self) -> None:
        return None

    def estimate_size(self) -> int:
        return 0

    def write(self, buffer: bytearray, offset: int) -> int:
        return 0

    def pack(self, packer: Packer) -> None:
        packer.write_nil()

    def to_bytes(self) -> bytes:
        return b""

    def __str__(self) -> str:
        return ""

    def __repr__(self) -> str:
        return "NULL"


class InfinityValue(Value):
    """Upper-bound marker for range filters. Has no particle type."""

    __slots__ = ()

    @property
    def particle_type(self) -> ParticleType:
        raise ParameterError("Invalid particle type: INF")

    def get(self) -> None:
        return None

    def estimate_size(self) -> int:
        return 0

    def write(self, buffer: bytearray, offset: int) -> int:
        return 0

    def pack(self, packer: Packer) -> None:
        packer.write_ext(EXT_INFINITY, b"")

    def to_bytes(self) -> bytes:
        return b""

    def __str__(self) -> str:
        return "INF"

    def __repr__(self) -> str:
        return "INFINITY"


class WildcardValue(Value):
    """Match-anything marker for filters. Has no particle type."""

    __slots__ = ()

    @property
    def particle_type(self) -> ParticleType:
        raise ParameterError("Invalid particle type: wildcard")

    def get(self) -> None:
        return None

    def estimate_size(self) -> int:
        return 0

    def write(self, buffer: bytearray, offset: int) -> int:
        return 0

    def pack(self, packer: Packer) -> None:
        packer.write_ext(EXT_WILDCARD, b"")

    def to_bytes(self) -> bytes:
        return b""

    def __str__(self) -> str:
        return "*"

    def __repr__(self) -> str:
        return "WILDCARD"


NULL = NullValue()
INFINITY = InfinityValue()
WILDCARD = WildcardValue()


class BytesValue(Value):
    """Byte array value."""

    __slots__ = ("_bytes",)

    def __init__(self, value: Union[bytes, bytearray, memoryview]):
        self._bytes = bytes(value)

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.BLOB

    def get(self) -> bytes:
        return self._bytes

    def estimate_size(self) -> int:
        return len(self._bytes)

    def write(self, buffer: bytearray, offset: int) -> int:
        return _write_binary(buffer, offset, self._bytes)

    def pack(self, packer: Packer) -> None:
        packer.write_ext(ParticleType.BLOB, self._bytes)

    def to_bytes(self) -> bytes:
        return self._bytes


class StringValue(Value):
    """Text value, encoded with the configured text encoding."""

    __slots__ = ("_value",)

    def __init__(self, value: Optional[str]):
        self._value = value or ""

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.STRING

    def get(self) -> str:
        return self._value

    def estimate_size(self) -> int:
        return len(self.to_bytes())

    def write(self, buffer: bytearray, offset: int) -> int:
        return _write_binary(buffer, offset, self.to_bytes())

    def pack(self, packer: Packer) -> None:
        packer.write_ext(ParticleType.STRING, self.to_bytes())

    def to_bytes(self) -> bytes:
        return self._value.encode(_encoding)

    def __str__(self) -> str:
        return self._value


class IntegerValue(Value):
    """64-bit integer value."""

    __slots__ = ("_value",)

    def __init__(self, value: Optional[int]):
        self._value = value or 0

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.INTEGER

    def get(self) -> int:
        return self._value

    def estimate_size(self) -> int:
        return 8

    def write(self, buffer: bytearray, offset: int) -> int:
        return _write_binary(buffer, offset, self.to_bytes())

    def pack(self, packer: Packer) -> None:
        packer.write(self._value)

    def to_bytes(self) -> bytes:
        # two's complement; values in [2**63, 2**64) keep their unsigned bits
        return struct.pack(">Q", self._value & _UINT64_MASK)

    def __str__(self) -> str:
        return str(self._value)


class FloatValue(Value):
    """IEEE-754 double value."""

    __slots__ = ("_value",)

    def __init__(self, value: Optional[float]):
        self._value = value or 0.0

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.DOUBLE

    def get(self) -> float:
        return self._value

    def estimate_size(self) -> int:
        return 8

    def write(self, buffer: bytearray, offset: int) -> int:
        return _write_binary(buffer, offset, self.to_bytes())

    def pack(self, packer: Packer) -> None:
        packer.write(self._value)

    def to_bytes(self) -> bytes:
        return struct.pack(">d", self._value)

    def __str__(self) -> str:
        return str(self._value)


class BoolValue(Value):
    """Boolean value. Supported by servers 5.6 and later."""

    __slots__ = ("_value",)

    def __init__(self, value: Optional[bool]):
        self._value = bool(value)

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.BOOL

    def get(self) -> bool:
        return self._value

    def estimate_size(self) -> int:
        return 1

    def write(self, buffer: bytearray, offset: int) -> int:
        return _write_binary(buffer, offset, self.to_bytes())

    def pack(self, packer: Packer) -> None:
        packer.write(self._value)

    def to_bytes(self) -> bytes:
        return b"\x01" if self._value else b"\x00"

    def __str__(self) -> str:
        return str(self._value)


class _PackedValue(Value):
    """Collection value whose fixed layout is its packed form.

    The packed bytes are computed on first use and shared by
    ``estimate_size`` and ``write``.
    """

    __slots__ = ("_packed",)

    def __init__(self):
        self._packed = None

    def _bytes(self) -> bytes:
        if self._packed is None:
            packer = Packer()
            self.pack(packer)
            self._packed = packer.bytes()
        return self._packed

    def estimate_size(self) -> int:
        return len(self._bytes())

    def write(self, buffer: bytearray, offset: int) -> int:
        return _write_binary(buffer, offset, self._bytes())

    def to_bytes(self) -> bytes:
        return self._bytes()


class ListValue(_PackedValue):
    """Ordered list value."""

    __slots__ = ("_list",)

    def __init__(self, value):
        super().__init__()
        self._list = value if value is not None else []

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.LIST

    def get(self):
        return self._list

    def pack(self, packer: Packer) -> None:
        packer.write_array_header(len(self._list))
        for item in self._list:
            Value.of(item).pack(packer)


class MapValue(_PackedValue):
    """Map value.

    Keys are validated one pair at a time while packing, so an invalid
    key aborts the encode after earlier pairs have already been written.
    """

    __slots__ = ("_map",)

    def __init__(self, value):
        super().__init__()
        self._map = value if value is not None else {}

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.MAP

    def get(self):
        return self._map

    def pack(self, packer: Packer) -> None:
        packer.write_map_header(len(self._map))
        for key, item in self._map.items():
            Value.validate_key(key)
            Value.of(key).pack(packer)
            Value.of(item).pack(packer)


class GeoJSONValue(Value):
    """GeoJSON value. Supported by servers 3.7 and later."""

    __slots__ = ("_json", "_bytes")

    def __init__(self, json: Union[GeoJSON, str, Mapping[str, Any]]):
        self._json = json if isinstance(json, GeoJSON) else GeoJSON(json)
        self._bytes = self._json.to_json().encode("utf-8")

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.GEOJSON

    def get(self) -> GeoJSON:
        return self._json

    def estimate_size(self) -> int:
        # flags + ncells + json text
        return 1 + 2 + len(self._bytes)

    def write(self, buffer: bytearray, offset: int) -> int:
        header = struct.pack(">BH", 0, 0)  # flags, ncells
        _write_binary(buffer, offset, header + self._bytes)
        return 3 + len(self._bytes)

    def pack(self, packer: Packer) -> None:
        packer.write_ext(ParticleType.GEOJSON, self._bytes)

    def to_bytes(self) -> bytes:
        return self._bytes


class HLLValue(Value):
    """Opaque HyperLogLog value. Supported by servers 4.9 and later."""

    __slots__ = ("_bytes",)

    def __init__(self, value: Union[bytes, bytearray, memoryview]):
        self._bytes = bytes(value)

    @property
    def particle_type(self) -> ParticleType:
        return ParticleType.HLL

    def get(self) -> "HLLValue":
        return self

    def estimate_size(self) -> int:
        return len(self._bytes)

    def write(self, buffer: bytearray, offset: int) -> int:
        return _write_binary(buffer, offset, self._bytes)

    def pack(self, packer: Packer) -> None:
        # the server reads HLL inside collections as a plain blob
        packer.write_ext(ParticleType.BLOB, self._bytes)

    def to_bytes(self) -> bytes:
        return self._bytes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HLLValue):
            return NotImplemented
        return self._bytes == other._bytes

    def __hash__(self) -> int:
        return hash(self._bytes)

    def __repr__(self) -> str:
        return f"HLLValue({self._bytes!r})"


def _decode_text(data: bytes) -> str:
    try:
        return data.decode(_encoding)
    except UnicodeDecodeError as e:
        raise SerializationError(
            f"String particle is not valid {_encoding}: {e}", data_type="string"
        )


def _ext_hook(code: int, data: bytes) -> Any:
    if code == EXT_WILDCARD and not data:
        return WILDCARD
    if code == EXT_INFINITY and not data:
        return INFINITY
    if code == ParticleType.STRING:
        return _decode_text(data)
    if code == ParticleType.BLOB:
        return bytes(data)
    if code == ParticleType.GEOJSON:
        return GeoJSON(_decode_text(data))
    if code == ParticleType.HLL:
        return HLLValue(data)
    return None


def unpack_particle(data: bytes) -> Any:
    """Decode a packed list or map particle into native values."""
    return unpack(data, ext_hook=_ext_hook)


def bytes_to_particle(particle_type: int, buf, offset: int, length: int) -> Any:
    """Decode a stored particle into a native value.

    Unknown particle types decode to None.
    """
    if particle_type == ParticleType.STRING:
        return _decode_text(bytes(buf[offset:offset + length]))

    if particle_type == ParticleType.INTEGER:
        if length < 8:
            return None
        return struct.unpack_from(">q", buf, offset)[0]

    if particle_type == ParticleType.DOUBLE:
        if length < 8:
            return None
        return struct.unpack_from(">d", buf, offset)[0]

    if particle_type == ParticleType.BOOL:
        if length <= 0:
            return False
        return buf[offset] != 0

    if particle_type == ParticleType.BLOB:
        return bytes(buf[offset:offset + length])

    if particle_type == ParticleType.LIST:
        if length <= 0:
            return []
        return unpack_particle(bytes(buf[offset:offset + length]))

    if particle_type == ParticleType.MAP:
        if length <= 0:
            return {}
        return unpack_particle(bytes(buf[offset:offset + length]))

    if particle_type == ParticleType.GEOJSON:
        # flags are ignored
        if length < 3:
            return GeoJSON("")
        ncells = struct.unpack_from(">H", buf, offset + 1)[0]
        header_size = 1 + 2 + (ncells * 8)
        if header_size >= length:
            return GeoJSON("")
        return GeoJSON(_decode_text(bytes(buf[offset + header_size:offset + length])))

    if particle_type == ParticleType.HLL:
        return HLLValue(buf[offset:offset + length])

    return None


def bytes_to_key_value(particle_type: int, buf, offset: int, length: int) -> Any:
    """Decode a user key stored alongside a record.

    Only string, integer and blob keys can be reconstructed; anything else
    yields None.
    """
    if particle_type == ParticleType.STRING:
        return _decode_text(bytes(buf[offset:offset + length]))

    if particle_type == ParticleType.INTEGER:
        value = int.from_bytes(bytes(buf[offset:offset + length]), "big")
        if length == 8 and value >= 1 << 63:
            value -= 1 << 64
        return value

    if particle_type == ParticleType.BLOB:
        return bytes(buf[offset:offset + length])

    return None
