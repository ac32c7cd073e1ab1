"""Core utility functions for tablemeta."""
import re
from typing import Tuple

_WORD_SEPARATORS = re.compile(r"[\s_\-]+")


def parse_identifier(identifier: str) -> Tuple[str, str, str]:
    """Parse a database identifier into (catalog, schema, table).

    Supports:
    - TABLE
    - SCHEMA.TABLE
    - CATALOG.SCHEMA.TABLE

    Returns:
        Tuple of (catalog, schema, table). Empty strings if not present.
    """
    if not identifier:
        return "", "", ""

    parts = identifier.split('.')
    if len(parts) == 3:
        return parts[0], parts[1], parts[2]
    if len(parts) == 2:
        return "", parts[0], parts[1]
    return "", "", identifier


def to_camel(name: str, upper_first: bool = True) -> str:
    """Convert a snake_case (or kebab/space separated) name to camel case.

    Examples:
        users -> Users
        order_items -> OrderItems
        USER_ID -> UserId (upper_first) / userId
    """
    words = [w for w in _WORD_SEPARATORS.split(name or "") if w]
    if not words:
        return ""

    # All-caps identifiers (Snowflake, Oracle) are lowered word by word
    parts = [w.lower() if w.isupper() else w for w in words]
    camel = "".join(p[:1].upper() + p[1:] for p in parts)
    if upper_first:
        return camel
    return camel[:1].lower() + camel[1:]
