"""Table introspection orchestration."""
import logging
from typing import Dict, Iterable, List, Optional

from tablemeta.config.table import TableConfiguration
from tablemeta.core.extractor import ColumnExtractor
from tablemeta.core.resolver import KeyIndexResolver
from tablemeta.core.utils import to_camel
from tablemeta.metadata import get_provider
from tablemeta.metadata.base import CatalogMetadataProvider, MetadataRow
from tablemeta.models.table import Column, TableCoordinate, TableDescriptor


class IntrospectionPreconditionError(ValueError):
    """Raised when introspection is called with a missing connection or table name."""


class TableAssembler:
    """Introspect one table into a TableDescriptor.

    Runs the table lookup, key/index resolution and column extraction
    serially on the caller's connection. The connection is never opened
    or closed here.
    """

    def __init__(
        self,
        connection,
        configuration: Optional[TableConfiguration] = None,
        provider: Optional[CatalogMetadataProvider] = None,
        logger: Optional[logging.Logger] = None
    ):
        """Initialize the assembler.

        Args:
            connection: Open DB-API connection owned by the caller
            configuration: Default table to introspect
            provider: Metadata provider; detected from the connection if omitted
            logger: Logger receiving progress and diagnostics

        Raises:
            IntrospectionPreconditionError: If no connection is given
            UnsupportedEngineError: If no provider exists for the connection
        """
        if connection is None:
            raise IntrospectionPreconditionError("A database connection is required")

        self.connection = connection
        self.configuration = configuration
        self.logger = logger or logging.getLogger(__name__)
        self.provider = provider or get_provider(connection)
        self.resolver = KeyIndexResolver(self.provider, logger=self.logger)
        self.extractor = ColumnExtractor(self.provider, logger=self.logger)

    def introspect_table(
        self,
        configuration: Optional[TableConfiguration] = None
    ) -> Optional[TableDescriptor]:
        """Introspect the configured table.

        Args:
            configuration: Table to introspect; defaults to the one given
                at construction

        Returns:
            TableDescriptor, or None if the table does not exist or its
            lookup failed

        Raises:
            IntrospectionPreconditionError: If no table name is configured
        """
        config = configuration or self.configuration
        if config is None or not (config.table_name or "").strip():
            raise IntrospectionPreconditionError("table_name must not be blank")

        coordinate = self._coordinate(config)
        self.logger.info("Introspecting table: %s", coordinate.qualified_name())

        try:
            table_row = self._find_table(coordinate)
        except Exception as e:  # pylint: disable=broad-except
            self.logger.warning("Failed to look up table %s: %s", coordinate.qualified_name(), e)
            return None

        if table_row is None:
            self.logger.warning("Table not found in database: %s", coordinate.qualified_name())
            return None

        return self._assemble(config, coordinate, table_row)

    def introspect_tables(
        self,
        configurations: Iterable[TableConfiguration]
    ) -> Dict[str, Optional[TableDescriptor]]:
        """Introspect several tables one after another.

        Returns:
            Mapping of qualified table name (catalog.schema.table, as
            configured) to descriptor; None when the table is absent
        """
        results = {}
        for config in configurations:
            results[self._coordinate(config).qualified_name()] = self.introspect_table(config)
        found = sum(1 for d in results.values() if d is not None)
        self.logger.info("Introspected %d of %d tables", found, len(results))
        return results

    @staticmethod
    def _coordinate(config: TableConfiguration) -> TableCoordinate:
        return TableCoordinate(
            catalog=config.catalog,
            schema_name=config.schema_name,
            table_name=config.table_name
        )

    def _find_table(self, coordinate: TableCoordinate) -> Optional[MetadataRow]:
        with self.provider.tables(coordinate, None) as rows:
            return next(iter(rows), None)

    @staticmethod
    def _class_name(config: TableConfiguration) -> str:
        # A non-blank override is used exactly as configured
        if (config.class_name or "").strip():
            return config.class_name
        return to_camel(config.table_name)

    def _table_remark(self, table_row: MetadataRow, coordinate: TableCoordinate) -> str:
        try:
            return self.provider.table_remarks(table_row, coordinate) or ""
        except Exception as e:  # pylint: disable=broad-except
            self.logger.warning("Failed to resolve remarks of table %s: %s", coordinate.table_name, e)
            return ""

    def _assemble(
        self,
        config: TableConfiguration,
        coordinate: TableCoordinate,
        table_row: MetadataRow
    ) -> TableDescriptor:
        key_sets = self.resolver.resolve(coordinate)
        column_result = self.extractor.extract(coordinate, key_sets)

        warnings = [
            f"{facet.facet} unavailable: {facet.error}"
            for facet in key_sets.failed_facets
        ]
        if column_result.failed:
            warnings.append(f"columns incomplete: {column_result.error}")

        columns: List[Column] = list(column_result.value)
        primary_key_columns = [c for c in columns if c.is_primary_key]
        non_primary_key_columns = [c for c in columns if not c.is_primary_key]

        descriptor = TableDescriptor(
            table_name=config.table_name,
            class_name=self._class_name(config),
            catalog=config.catalog,
            schema_name=config.schema_name,
            table_type=table_row.get("TABLE_TYPE"),
            remark=self._table_remark(table_row, coordinate),
            columns=columns,
            primary_key_columns=primary_key_columns,
            non_primary_key_columns=non_primary_key_columns,
            primary_key_count=len(primary_key_columns),
            imported_keys=list(key_sets.imported_keys.value),
            exported_keys=list(key_sets.exported_keys.value),
            warnings=warnings,
        )

        if warnings:
            self.logger.warning(
                "Table %s introspected with degraded metadata: %s",
                coordinate.qualified_name(), "; ".join(warnings)
            )
        self.logger.info(
            "Table %s resolved: %d columns, %d primary key columns",
            coordinate.qualified_name(), len(columns), descriptor.primary_key_count
        )
        return descriptor


def introspect_table(
    connection,
    configuration: TableConfiguration,
    logger: Optional[logging.Logger] = None
) -> Optional[TableDescriptor]:
    """Introspect one table on a caller-owned connection."""
    return TableAssembler(connection, configuration, logger=logger).introspect_table()
