"""
Wire protocol constants shared with the server.

The numeric values are part of the server contract and must not change.
"""

from enum import IntEnum


class ParticleType(IntEnum):
    """Server particle (stored value) type tags."""
    NULL = 0
    INTEGER = 1
    DOUBLE = 2
    STRING = 3
    BLOB = 4
    JBLOB = 7
    BOOL = 17
    HLL = 18
    MAP = 19
    LIST = 20
    LDT = 21
    GEOJSON = 23


class FieldType(IntEnum):
    """Command header field type tags."""
    NAMESPACE = 0
    TABLE = 1
    KEY = 2
    DIGEST_RIPE = 4
    DIGEST_RIPE_ARRAY = 6
    TRAN_ID = 7
    SCAN_OPTIONS = 8
    SCAN_TIMEOUT = 9
    RECORDS_PER_SECOND = 10
    PID_ARRAY = 11
    INDEX_NAME = 21
    INDEX_RANGE = 22
    INDEX_FILTER = 23
    INDEX_LIMIT = 24
    INDEX_ORDER_BY = 25
    INDEX_TYPE = 26
    UDF_PACKAGE_NAME = 30
    UDF_FUNCTION = 31
    UDF_ARGLIST = 32
    UDF_OP = 33
    QUERY_BINLIST = 40
    BATCH_INDEX = 41
    PREDEXP = 43


# Number of partitions per namespace.
PARTITIONS = 4096

# Extension codes for query-filter sentinels in self-describing encoding.
EXT_WILDCARD = 0x00
EXT_INFINITY = 0x01

# Info protocol keys.
INFO_NODE = "node"
INFO_BUILD = "build"
INFO_REPLICAS_MASTER = "replicas-master"
