"""Primary key, index membership and foreign key resolution."""
import logging
from typing import Callable, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from tablemeta.metadata.base import CatalogMetadataProvider, MetadataRow
from tablemeta.models.result import FacetResult
from tablemeta.models.table import ForeignKey, TableCoordinate

PRIMARY_KEYS = "primary_keys"
INDEXED_COLUMNS = "indexed_columns"
UNIQUE_INDEXED_COLUMNS = "unique_indexed_columns"
EXPORTED_KEYS = "exported_keys"
IMPORTED_KEYS = "imported_keys"


class KeySets(BaseModel):
    """Everything the resolver knows about one table's keys and indexes."""

    primary_keys: FacetResult
    indexed: FacetResult
    unique_indexed: FacetResult
    exported_keys: FacetResult
    imported_keys: FacetResult

    model_config = ConfigDict(frozen=True)

    def facets(self) -> Tuple[FacetResult, ...]:
        """All facet results, in resolution order."""
        return (
            self.primary_keys,
            self.indexed,
            self.unique_indexed,
            self.exported_keys,
            self.imported_keys,
        )

    @property
    def failed_facets(self) -> Tuple[FacetResult, ...]:
        """Facet results whose query failed."""
        return tuple(f for f in self.facets() if f.failed)


class KeyIndexResolver:
    """Collect key and index column names for a table.

    Each query is independent: a failing query yields an empty, failed
    FacetResult and a warning instead of an exception, so one missing
    facet never aborts the table.
    """

    def __init__(self, provider: CatalogMetadataProvider, logger: Optional[logging.Logger] = None):
        self.provider = provider
        self.logger = logger or logging.getLogger(__name__)

    def _collect_names(self, facet: str, open_stream: Callable) -> FacetResult[FrozenSet[str]]:
        names = set()
        try:
            with open_stream() as rows:
                for row in rows:
                    column_name = row.get("COLUMN_NAME")
                    if column_name is not None:
                        names.add(column_name)
        except Exception as e:  # pylint: disable=broad-except
            self.logger.warning("Failed to fetch %s: %s", facet, e)
            return FacetResult.failure(facet, frozenset(), e)
        return FacetResult.success(facet, frozenset(names))

    def primary_keys(self, coordinate: TableCoordinate) -> FacetResult[FrozenSet[str]]:
        """Names of the table's primary key columns.

        KEY_SEQ is reported by providers but membership is all that is
        collected here; column order comes from the column listing.
        """
        return self._collect_names(PRIMARY_KEYS, lambda: self.provider.primary_keys(coordinate))

    def index_columns(self, coordinate: TableCoordinate, unique: bool) -> FacetResult[FrozenSet[str]]:
        """Names of columns in any index, or only in unique indexes."""
        facet = UNIQUE_INDEXED_COLUMNS if unique else INDEXED_COLUMNS
        return self._collect_names(facet, lambda: self.provider.index_info(coordinate, unique))

    def indexed_columns(self, coordinate: TableCoordinate) -> FacetResult[FrozenSet[str]]:
        return self.index_columns(coordinate, unique=False)

    def unique_indexed_columns(self, coordinate: TableCoordinate) -> FacetResult[FrozenSet[str]]:
        return self.index_columns(coordinate, unique=True)

    @staticmethod
    def _to_foreign_key(row: MetadataRow) -> ForeignKey:
        return ForeignKey(
            pk_catalog=row.get("PKTABLE_CAT"),
            pk_schema=row.get("PKTABLE_SCHEM"),
            pk_table_name=row["PKTABLE_NAME"],
            pk_column_name=row.get("PKCOLUMN_NAME"),
            fk_catalog=row.get("FKTABLE_CAT"),
            fk_schema=row.get("FKTABLE_SCHEM"),
            fk_table_name=row["FKTABLE_NAME"],
            fk_column_name=row["FKCOLUMN_NAME"],
            key_seq=row.get("KEY_SEQ") or 1,
            fk_name=row.get("FK_NAME"),
            pk_name=row.get("PK_NAME"),
        )

    def _collect_keys(self, facet: str, open_stream: Callable) -> FacetResult[Tuple[ForeignKey, ...]]:
        keys = []
        try:
            with open_stream() as rows:
                for row in rows:
                    keys.append(self._to_foreign_key(row))
        except Exception as e:  # pylint: disable=broad-except
            self.logger.warning("Failed to fetch %s: %s", facet, e)
            return FacetResult.failure(facet, tuple(keys), e)
        return FacetResult.success(facet, tuple(keys))

    def exported_keys(self, coordinate: TableCoordinate) -> FacetResult[Tuple[ForeignKey, ...]]:
        """Foreign keys in other tables referencing this table."""
        return self._collect_keys(EXPORTED_KEYS, lambda: self.provider.exported_keys(coordinate))

    def imported_keys(self, coordinate: TableCoordinate) -> FacetResult[Tuple[ForeignKey, ...]]:
        """This table's foreign keys."""
        return self._collect_keys(IMPORTED_KEYS, lambda: self.provider.imported_keys(coordinate))

    def resolve(self, coordinate: TableCoordinate) -> KeySets:
        """Run every key and index query for the table, one after another."""
        key_sets = KeySets(
            primary_keys=self.primary_keys(coordinate),
            indexed=self.indexed_columns(coordinate),
            unique_indexed=self.unique_indexed_columns(coordinate),
            exported_keys=self.exported_keys(coordinate),
            imported_keys=self.imported_keys(coordinate),
        )
        self.logger.debug(
            "Resolved keys for %s: pk=%s indexed=%s unique=%s",
            coordinate.qualified_name(),
            sorted(key_sets.primary_keys.value),
            sorted(key_sets.indexed.value),
            sorted(key_sets.unique_indexed.value),
        )
        return key_sets
