"""
AeroKV Python Client

Wire value codec and cluster partition routing for a distributed
key-value database.
"""

from .client import AeroKVClient, ClientConfig, ClientBuilder, Node
from .connection import InfoConnection, fetch_info_value, parse_info_response
from .constants import FieldType, ParticleType, PARTITIONS
from .host import Host
from .node_validator import NodeIdentity, bootstrap, parse_version_string, supports_new_info
from .record import Record
from .partition import Partition, PartitionParser, PartitionTable, merge
from .packer import Packer
from .value import (
    Value,
    NULL,
    INFINITY,
    WILDCARD,
    GeoJSON,
    HLLValue,
    bytes_to_particle,
    bytes_to_key_value,
    get_encoding,
    set_encoding,
)
from .errors import (
    AeroKVError,
    TypeNotSupported,
    ParameterError,
    ParseError,
    ConnectionError,
    TimeoutError,
    ConfigurationError,
    SerializationError,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "AeroKVClient",
    "ClientConfig",
    "ClientBuilder",
    "Node",
    "Host",
    
    # Cluster discovery
    "InfoConnection",
    "fetch_info_value",
    "parse_info_response",
    "NodeIdentity",
    "bootstrap",
    "parse_version_string",
    "supports_new_info",
    "Partition",
    "PartitionParser",
    "PartitionTable",
    "merge",
    "PARTITIONS",
    
    # Values
    "Value",
    "NULL",
    "INFINITY",
    "WILDCARD",
    "GeoJSON",
    "HLLValue",
    "Packer",
    "ParticleType",
    "FieldType",
    "Record",
    "bytes_to_particle",
    "bytes_to_key_value",
    "get_encoding",
    "set_encoding",
    
    # Errors
    "AeroKVError",
    "TypeNotSupported",
    "ParameterError",
    "ParseError",
    "ConnectionError",
    "TimeoutError",
    "ConfigurationError",
    "SerializationError",
    
    # Metadata
    "__version__",
]
