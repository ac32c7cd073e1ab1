"""Abstract base class for catalog metadata providers."""
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, ContextManager, Dict, Iterator, Optional, Sequence

from tablemeta.models.table import TableCoordinate

MetadataRow = Dict[str, Any]
RowStream = ContextManager[Iterator[MetadataRow]]


class Nullability(IntEnum):
    """Nullability codes reported in the ``NULLABLE`` column label."""

    NO_NULLS = 0
    NULLABLE = 1
    UNKNOWN = 2


class CatalogMetadataProvider(ABC):
    """Abstract base class for engine-specific catalog metadata providers.

    A provider wraps a caller-owned DB-API connection and never opens or
    closes it. Every query method returns a context manager that yields an
    iterator of rows keyed by the standard metadata labels (``TABLE_NAME``,
    ``COLUMN_NAME``, ``KEY_SEQ``, ...). The cursor behind a stream is
    released when the ``with`` block exits, on success or error.
    """

    engine: str = ""

    def __init__(self, connection):
        """Wrap an open connection."""
        self.conn = connection

    @abstractmethod
    def tables(
        self,
        coordinate: TableCoordinate,
        table_types: Optional[Sequence[str]] = None
    ) -> RowStream:
        """Stream tables matching the coordinate.

        Args:
            coordinate: Catalog/schema/table-name-pattern to match
            table_types: Table types to keep (e.g. ["TABLE", "VIEW"]);
                None matches every type the engine reports

        Row labels: TABLE_CAT, TABLE_SCHEM, TABLE_NAME, TABLE_TYPE, REMARKS
        """

    @abstractmethod
    def columns(self, coordinate: TableCoordinate) -> RowStream:
        """Stream the table's columns in ordinal order.

        Row labels: TABLE_NAME, COLUMN_NAME, DATA_TYPE, TYPE_NAME,
        COLUMN_SIZE, DECIMAL_DIGITS, NULLABLE, REMARKS, COLUMN_DEF,
        ORDINAL_POSITION, IS_AUTOINCREMENT ("YES", "NO" or "" if unknown)
        """

    @abstractmethod
    def primary_keys(self, coordinate: TableCoordinate) -> RowStream:
        """Stream the table's primary key columns.

        Row labels: TABLE_NAME, COLUMN_NAME, KEY_SEQ, PK_NAME
        """

    @abstractmethod
    def index_info(self, coordinate: TableCoordinate, unique: bool) -> RowStream:
        """Stream index member columns.

        Args:
            coordinate: Table coordinate
            unique: When True, only unique indexes are reported

        Row labels: TABLE_NAME, NON_UNIQUE, INDEX_NAME, ORDINAL_POSITION, COLUMN_NAME
        """

    @abstractmethod
    def exported_keys(self, coordinate: TableCoordinate) -> RowStream:
        """Stream foreign keys in other tables that reference this table.

        Row labels: PKTABLE_CAT, PKTABLE_SCHEM, PKTABLE_NAME, PKCOLUMN_NAME,
        FKTABLE_CAT, FKTABLE_SCHEM, FKTABLE_NAME, FKCOLUMN_NAME, KEY_SEQ,
        FK_NAME, PK_NAME
        """

    @abstractmethod
    def imported_keys(self, coordinate: TableCoordinate) -> RowStream:
        """Stream this table's foreign keys and the columns they reference.

        Row labels: same as exported_keys()
        """

    def table_remarks(self, row: MetadataRow, coordinate: TableCoordinate) -> Optional[str]:
        """Table comment, from the row or an engine-specific lookup."""
        remarks = row.get("REMARKS")
        if remarks:
            return remarks
        return self._lookup_table_remarks(coordinate)

    def column_remarks(self, row: MetadataRow, coordinate: TableCoordinate) -> Optional[str]:
        """Column comment, from the row or an engine-specific lookup."""
        remarks = row.get("REMARKS")
        if remarks:
            return remarks
        return self._lookup_column_remarks(row, coordinate)

    def column_default(self, row: MetadataRow, coordinate: TableCoordinate) -> Optional[str]:
        """Literal default expression, from the row or an engine-specific lookup."""
        default = row.get("COLUMN_DEF")
        if default is not None:
            return str(default)
        return self._lookup_column_default(row, coordinate)

    def is_autoincrement(self, row: MetadataRow, coordinate: TableCoordinate) -> bool:
        """Whether the column is auto-incremented.

        ``IS_AUTOINCREMENT`` of "YES"/"NO" is authoritative; anything else is
        resolved through the engine-specific lookup.
        """
        flag = str(row.get("IS_AUTOINCREMENT") or "").upper()
        if flag == "YES":
            return True
        if flag == "NO":
            return False
        return self._lookup_autoincrement(row, coordinate)

    # pylint: disable=unused-argument
    def _lookup_table_remarks(self, coordinate: TableCoordinate) -> Optional[str]:
        return None

    def _lookup_column_remarks(
        self, row: MetadataRow, coordinate: TableCoordinate
    ) -> Optional[str]:
        return None

    def _lookup_column_default(
        self, row: MetadataRow, coordinate: TableCoordinate
    ) -> Optional[str]:
        return None

    def _lookup_autoincrement(self, row: MetadataRow, coordinate: TableCoordinate) -> bool:
        return False


def iter_dict_rows(cursor) -> Iterator[MetadataRow]:
    """Yield cursor rows as dicts keyed by upper-cased column labels."""
    labels = [d[0].upper() for d in cursor.description or []]
    for row in cursor.fetchall():
        yield dict(zip(labels, row))
