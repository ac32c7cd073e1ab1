"""Snowflake catalog metadata provider."""
import logging
from contextlib import closing, contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

import snowflake.connector  # pylint: disable=import-error,no-name-in-module

from tablemeta.metadata.base import (
    CatalogMetadataProvider,
    MetadataRow,
    Nullability,
    iter_dict_rows,
)
from tablemeta.models.sql_types import resolve_sql_type
from tablemeta.models.table import TableCoordinate
from tablemeta.sql.ddl import render_identifier, render_table_name

logger = logging.getLogger(__name__)

# INFORMATION_SCHEMA.TABLES spells base tables differently from other engines
_TABLE_TYPES = {'BASE TABLE': 'TABLE'}

_IDENTITY_MARKERS = ('IDENTITY', 'AUTOINCREMENT', '.NEXTVAL')


def connect(config: Dict[str, Any]):
    """Open a Snowflake connection from a connection config dictionary.

    Args:
        config: Connection configuration with keys account, user, password
            and optionally warehouse, database, schema

    Raises:
        snowflake.connector.errors.Error: If connection fails
    """
    try:
        conn = snowflake.connector.connect(**config)
        logger.info("Successfully connected to Snowflake")
        return conn
    except snowflake.connector.errors.Error as e:  # pylint: disable=no-member
        logger.error("Failed to connect to Snowflake: %s", e)
        raise


class SnowflakeMetadataProvider(CatalogMetadataProvider):
    """Catalog metadata for an open Snowflake connection.

    Tables and columns come from INFORMATION_SCHEMA; keys come from the
    SHOW ... KEYS commands. Standard Snowflake tables have no secondary
    indexes, so index membership is derived from PRIMARY KEY and UNIQUE
    constraints, which are always unique.
    """

    engine = 'snowflake'

    @contextmanager
    def _query(self, sql: str, params: Optional[Sequence] = None) -> Iterator[Iterator[MetadataRow]]:
        """Run a query on a fresh cursor, closing it when the block exits."""
        with closing(self.conn.cursor()) as cursor:
            logger.debug("Executing metadata query: %s", sql)
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, params)
            yield iter_dict_rows(cursor)

    @staticmethod
    def _information_schema(coordinate: TableCoordinate, view: str) -> str:
        if coordinate.catalog:
            return f"{render_identifier(coordinate.catalog)}.INFORMATION_SCHEMA.{view}"
        return f"INFORMATION_SCHEMA.{view}"

    @staticmethod
    def _filters(coordinate: TableCoordinate):
        clauses = ["TABLE_NAME ILIKE %s"]
        params = [coordinate.table_name]
        if coordinate.schema_name:
            clauses.append("TABLE_SCHEMA ILIKE %s")
            params.append(coordinate.schema_name)
        return " AND ".join(clauses), params

    @staticmethod
    def _table_ref(coordinate: TableCoordinate) -> str:
        return render_table_name(
            coordinate.table_name,
            schema=coordinate.schema_name,
            catalog=coordinate.catalog,
            dialect='snowflake'
        )

    @contextmanager
    def tables(
        self,
        coordinate: TableCoordinate,
        table_types: Optional[Sequence[str]] = None
    ):
        where, params = self._filters(coordinate)
        sql = (
            "SELECT TABLE_CATALOG, TABLE_SCHEMA, TABLE_NAME, TABLE_TYPE, COMMENT "
            f"FROM {self._information_schema(coordinate, 'TABLES')} "
            f"WHERE {where} ORDER BY TABLE_SCHEMA, TABLE_NAME"
        )
        wanted = {t.upper() for t in table_types} if table_types else None
        with self._query(sql, params) as rows:
            yield (
                row for row in (self._table_row(r) for r in rows)
                if wanted is None or row['TABLE_TYPE'] in wanted
            )

    @staticmethod
    def _table_row(row: MetadataRow) -> MetadataRow:
        table_type = row.get('TABLE_TYPE') or ''
        return {
            'TABLE_CAT': row.get('TABLE_CATALOG'),
            'TABLE_SCHEM': row.get('TABLE_SCHEMA'),
            'TABLE_NAME': row.get('TABLE_NAME'),
            'TABLE_TYPE': _TABLE_TYPES.get(table_type, table_type),
            'REMARKS': row.get('COMMENT'),
        }

    @contextmanager
    def columns(self, coordinate: TableCoordinate):
        where, params = self._filters(coordinate)
        sql = (
            "SELECT TABLE_NAME, COLUMN_NAME, DATA_TYPE, CHARACTER_MAXIMUM_LENGTH, "
            "NUMERIC_PRECISION, NUMERIC_SCALE, IS_NULLABLE, COLUMN_DEFAULT, COMMENT, "
            "ORDINAL_POSITION, IS_IDENTITY "
            f"FROM {self._information_schema(coordinate, 'COLUMNS')} "
            f"WHERE {where} ORDER BY ORDINAL_POSITION"
        )
        with self._query(sql, params) as rows:
            yield (self._column_row(row) for row in rows)

    @staticmethod
    def _column_row(row: MetadataRow) -> MetadataRow:
        type_name = row.get('DATA_TYPE') or ''
        identity = row.get('IS_IDENTITY')
        return {
            'TABLE_NAME': row.get('TABLE_NAME'),
            'COLUMN_NAME': row.get('COLUMN_NAME'),
            'DATA_TYPE': int(resolve_sql_type(type_name)),
            'TYPE_NAME': type_name,
            'COLUMN_SIZE': row.get('CHARACTER_MAXIMUM_LENGTH') or row.get('NUMERIC_PRECISION') or 0,
            'DECIMAL_DIGITS': row.get('NUMERIC_SCALE') or 0,
            'NULLABLE': Nullability.NULLABLE if row.get('IS_NULLABLE') == 'YES' else Nullability.NO_NULLS,
            'REMARKS': row.get('COMMENT'),
            'COLUMN_DEF': row.get('COLUMN_DEFAULT'),
            'ORDINAL_POSITION': row.get('ORDINAL_POSITION'),
            'IS_AUTOINCREMENT': identity if identity in ('YES', 'NO') else '',
        }

    def _show_constraint(self, command: str, coordinate: TableCoordinate) -> List[MetadataRow]:
        with self._query(f"{command} IN TABLE {self._table_ref(coordinate)}") as rows:
            return list(rows)

    @contextmanager
    def primary_keys(self, coordinate: TableCoordinate):
        rows = self._show_constraint("SHOW PRIMARY KEYS", coordinate)
        yield (
            {
                'TABLE_NAME': row.get('TABLE_NAME'),
                'COLUMN_NAME': row.get('COLUMN_NAME'),
                'KEY_SEQ': row.get('KEY_SEQUENCE'),
                'PK_NAME': row.get('CONSTRAINT_NAME'),
            }
            for row in rows
        )

    @contextmanager
    def index_info(self, coordinate: TableCoordinate, unique: bool):  # pylint: disable=unused-argument
        # Every constraint-backed "index" in Snowflake is unique
        rows = (
            self._show_constraint("SHOW PRIMARY KEYS", coordinate)
            + self._show_constraint("SHOW UNIQUE KEYS", coordinate)
        )
        yield (
            {
                'TABLE_NAME': row.get('TABLE_NAME'),
                'NON_UNIQUE': False,
                'INDEX_NAME': row.get('CONSTRAINT_NAME'),
                'ORDINAL_POSITION': row.get('KEY_SEQUENCE'),
                'COLUMN_NAME': row.get('COLUMN_NAME'),
            }
            for row in rows
        )

    @staticmethod
    def _key_row(row: MetadataRow) -> MetadataRow:
        return {
            'PKTABLE_CAT': row.get('PK_DATABASE_NAME'),
            'PKTABLE_SCHEM': row.get('PK_SCHEMA_NAME'),
            'PKTABLE_NAME': row.get('PK_TABLE_NAME'),
            'PKCOLUMN_NAME': row.get('PK_COLUMN_NAME'),
            'FKTABLE_CAT': row.get('FK_DATABASE_NAME'),
            'FKTABLE_SCHEM': row.get('FK_SCHEMA_NAME'),
            'FKTABLE_NAME': row.get('FK_TABLE_NAME'),
            'FKCOLUMN_NAME': row.get('FK_COLUMN_NAME'),
            'KEY_SEQ': row.get('KEY_SEQUENCE'),
            'FK_NAME': row.get('FK_NAME'),
            'PK_NAME': row.get('PK_NAME'),
        }

    @contextmanager
    def exported_keys(self, coordinate: TableCoordinate):
        with self._query(f"SHOW EXPORTED KEYS IN TABLE {self._table_ref(coordinate)}") as rows:
            yield (self._key_row(row) for row in rows)

    @contextmanager
    def imported_keys(self, coordinate: TableCoordinate):
        with self._query(f"SHOW IMPORTED KEYS IN TABLE {self._table_ref(coordinate)}") as rows:
            yield (self._key_row(row) for row in rows)

    def _lookup_autoincrement(self, row: MetadataRow, coordinate: TableCoordinate) -> bool:  # pylint: disable=unused-argument
        """Fall back to the column default when IS_IDENTITY is not reported.

        Sequence-backed and AUTOINCREMENT columns surface in COLUMN_DEFAULT.
        """
        default = str(row.get('COLUMN_DEF') or '').upper()
        return any(marker in default for marker in _IDENTITY_MARKERS)
