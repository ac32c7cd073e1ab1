"""Vendor-neutral SQL type codes and dialect type-name resolution."""
import re
from enum import IntEnum


class SqlType(IntEnum):
    """Vendor-neutral SQL type codes (java.sql.Types numbering)."""

    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    NCHAR = -15
    NVARCHAR = -9
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    TIMESTAMP_WITH_TIMEZONE = 2014
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    BLOB = 2004
    CLOB = 2005
    NCLOB = 2011
    BOOLEAN = 16
    NULL = 0
    OTHER = 1111


# Dialect spellings, keyed by the upper-cased base type name
TYPE_NAME_MAP = {
    "BIT": SqlType.BIT,
    "TINYINT": SqlType.TINYINT,
    "BYTEINT": SqlType.TINYINT,
    "SMALLINT": SqlType.SMALLINT,
    "INT2": SqlType.SMALLINT,
    "INT": SqlType.INTEGER,
    "INTEGER": SqlType.INTEGER,
    "INT4": SqlType.INTEGER,
    "MEDIUMINT": SqlType.INTEGER,
    "BIGINT": SqlType.BIGINT,
    "INT8": SqlType.BIGINT,
    "FLOAT": SqlType.FLOAT,
    "FLOAT4": SqlType.REAL,
    "REAL": SqlType.REAL,
    "DOUBLE": SqlType.DOUBLE,
    "DOUBLE PRECISION": SqlType.DOUBLE,
    "FLOAT8": SqlType.DOUBLE,
    "BINARY_FLOAT": SqlType.FLOAT,
    "BINARY_DOUBLE": SqlType.DOUBLE,
    "NUMERIC": SqlType.NUMERIC,
    "DECIMAL": SqlType.DECIMAL,
    "NUMBER": SqlType.DECIMAL,
    "CHAR": SqlType.CHAR,
    "CHARACTER": SqlType.CHAR,
    "NCHAR": SqlType.NCHAR,
    "VARCHAR": SqlType.VARCHAR,
    "VARCHAR2": SqlType.VARCHAR,
    "CHARACTER VARYING": SqlType.VARCHAR,
    "STRING": SqlType.VARCHAR,
    "TEXT": SqlType.VARCHAR,
    "NVARCHAR": SqlType.NVARCHAR,
    "NVARCHAR2": SqlType.NVARCHAR,
    "LONGTEXT": SqlType.LONGVARCHAR,
    "MEDIUMTEXT": SqlType.LONGVARCHAR,
    "CLOB": SqlType.CLOB,
    "NCLOB": SqlType.NCLOB,
    "DATE": SqlType.DATE,
    "TIME": SqlType.TIME,
    "DATETIME": SqlType.TIMESTAMP,
    "TIMESTAMP": SqlType.TIMESTAMP,
    "TIMESTAMP_NTZ": SqlType.TIMESTAMP,
    "TIMESTAMP_LTZ": SqlType.TIMESTAMP_WITH_TIMEZONE,
    "TIMESTAMP_TZ": SqlType.TIMESTAMP_WITH_TIMEZONE,
    "TIMESTAMPTZ": SqlType.TIMESTAMP_WITH_TIMEZONE,
    "BINARY": SqlType.BINARY,
    "VARBINARY": SqlType.VARBINARY,
    "RAW": SqlType.VARBINARY,
    "BYTEA": SqlType.LONGVARBINARY,
    "LONG RAW": SqlType.LONGVARBINARY,
    "BLOB": SqlType.BLOB,
    "BOOLEAN": SqlType.BOOLEAN,
    "BOOL": SqlType.BOOLEAN,
}

_TYPE_NAME_RE = re.compile(
    r"^\s*(?P<base>[^(]+?)\s*(?:\(\s*(?P<size>\d+)\s*(?:,\s*(?P<scale>\d+)\s*)?\))?\s*$"
)


def split_type_name(type_name: str):
    """Split a declared type like ``DECIMAL(10,2)`` into (base, size, scale).

    Size and scale are 0 when the declaration carries none.
    """
    match = _TYPE_NAME_RE.match(type_name or "")
    if not match:
        return (type_name or "").strip().upper(), 0, 0
    size = int(match.group("size")) if match.group("size") else 0
    scale = int(match.group("scale")) if match.group("scale") else 0
    return match.group("base").upper(), size, scale


def resolve_sql_type(type_name: str) -> int:
    """Resolve a dialect type name to a vendor-neutral type code.

    Unknown names fall back to SQLite-style type affinity before giving up
    with ``SqlType.OTHER``.
    """
    base, _, _ = split_type_name(type_name)
    if not base:
        return SqlType.NULL
    if base in TYPE_NAME_MAP:
        return TYPE_NAME_MAP[base]

    if "INT" in base:
        return SqlType.INTEGER
    if "CHAR" in base or "CLOB" in base or "TEXT" in base:
        return SqlType.VARCHAR
    if "BLOB" in base:
        return SqlType.BLOB
    if "REAL" in base or "FLOA" in base or "DOUB" in base:
        return SqlType.DOUBLE
    return SqlType.OTHER
