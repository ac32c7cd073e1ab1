"""Column extraction from the catalog's column listing."""
import logging
from typing import Callable, List, Optional, Tuple

from tablemeta.core.resolver import KeySets
from tablemeta.metadata.base import CatalogMetadataProvider, MetadataRow, Nullability
from tablemeta.models.result import FacetResult
from tablemeta.models.table import Column, TableCoordinate

COLUMNS = "columns"


class ColumnExtractor:
    """Build one Column per row of a table's column listing.

    Key and index flags come from set membership against the resolver's
    results. A failure while reading the listing stops extraction and
    returns the columns read so far in a failed FacetResult.
    """

    def __init__(self, provider: CatalogMetadataProvider, logger: Optional[logging.Logger] = None):
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)

    def extract(self, coordinate: TableCoordinate, keys: KeySets) -> FacetResult[Tuple[Column, ...]]:
        """Extract the table's columns in catalog order.

        Args:
            coordinate: Table coordinate
            keys: Key and index sets for the same table

        Returns:
            FacetResult holding the columns; failed and partial if the
            column listing raised part-way through.
        """
        columns: List[Column] = []
        self.logger.info(
            "Reading columns of %s (catalog=%s, schema=%s)",
            coordinate.table_name, coordinate.catalog, coordinate.schema_name
        )
        try:
            with self.provider.columns(coordinate) as rows:
                for row in rows:
                    column = self._build_column(row, coordinate, keys)
                    columns.append(column)
                    self.logger.debug("Resolved column: %s", column.column_name)
        except Exception as e:  # pylint: disable=broad-except
            self.logger.warning(
                "Failed to read columns of %s after %d columns: %s",
                coordinate.qualified_name(), len(columns), e
            )
            return FacetResult.failure(COLUMNS, tuple(columns), e)

        self.logger.info("Resolved %d columns of %s", len(columns), coordinate.qualified_name())
        return FacetResult.success(COLUMNS, tuple(columns))

    def _build_column(self, row: MetadataRow, coordinate: TableCoordinate, keys: KeySets) -> Column:
        column_name = row["COLUMN_NAME"]
        return Column(
            column_name=column_name,
            sql_type=row.get("DATA_TYPE") or 0,
            sql_type_name=row.get("TYPE_NAME") or "",
            column_size=row.get("COLUMN_SIZE") or 0,
            decimal_digits=row.get("DECIMAL_DIGITS") or 0,
            default_value=self._auxiliary(
                "default", column_name, lambda: self.provider.column_default(row, coordinate), None
            ),
            remark=self._auxiliary(
                "remarks", column_name, lambda: self.provider.column_remarks(row, coordinate), None
            ),
            # Unknown nullability counts as NOT NULL
            nullable=row.get("NULLABLE") == Nullability.NULLABLE,
            is_primary_key=column_name in keys.primary_keys.value,
            is_indexed=column_name in keys.indexed.value,
            is_unique_indexed=column_name in keys.unique_indexed.value,
            is_auto_increment=bool(self._auxiliary(
                "auto-increment flag", column_name,
                lambda: self.provider.is_autoincrement(row, coordinate), False
            )),
        )

    def _auxiliary(self, fact: str, column_name: str, lookup: Callable, fallback):
        """Run one auxiliary lookup; a failure degrades the fact, not the column."""
        try:
            return lookup()
        except Exception as e:  # pylint: disable=broad-except
            self.logger.warning("Failed to resolve %s of column %s: %s", fact, column_name, e)
            return fallback
