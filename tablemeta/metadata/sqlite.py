"""SQLite catalog metadata provider."""
import logging
import re
import sqlite3
from contextlib import closing, contextmanager
from typing import Dict, FrozenSet, Iterator, List, NamedTuple, Optional, Sequence

from tablemeta.metadata.base import CatalogMetadataProvider, MetadataRow, Nullability
from tablemeta.models.sql_types import resolve_sql_type, split_type_name
from tablemeta.models.table import TableCoordinate
from tablemeta.sql.ddl import find_autoincrement_columns

logger = logging.getLogger(__name__)

_TABLE_TYPES = {'table': 'TABLE', 'view': 'VIEW'}

# Table options follow the closing parenthesis of the column list
_WITHOUT_ROWID = re.compile(r"\)[^)]*\bWITHOUT\s+ROWID\b[^)]*\Z", re.IGNORECASE)


class _TableFacts(NamedTuple):
    autoincrement: FrozenSet[str]
    rowid_alias: Optional[str]


def _quote(identifier: str) -> str:
    """Quote an SQLite identifier, doubling embedded quotes."""
    return '"' + identifier.replace('"', '""') + '"'


class SqliteMetadataProvider(CatalogMetadataProvider):
    """Catalog metadata for an open ``sqlite3.Connection``.

    SQLite has no catalogs; the coordinate's schema names an attached
    database ("main", "temp", ...). Comments are not supported by SQLite,
    so remarks are always empty.
    """

    engine = 'sqlite'

    def __init__(self, connection):
        super().__init__(connection)
        self._table_facts: Dict[TableCoordinate, _TableFacts] = {}

    @contextmanager
    def _query(self, sql: str, params: Sequence = ()) -> Iterator[Iterator[sqlite3.Row]]:
        """Run a query on a fresh cursor, closing it when the block exits."""
        with closing(self.conn.cursor()) as cursor:
            cursor.row_factory = sqlite3.Row
            cursor.execute(sql, tuple(params))
            yield iter(cursor.fetchall())

    def _master(self, schema: Optional[str]) -> str:
        if schema:
            return f"{_quote(schema)}.sqlite_master"
        return "sqlite_master"

    @staticmethod
    def _pragma(name: str, schema: Optional[str]) -> str:
        # Table-valued pragma functions take the schema as a trailing argument
        if schema:
            return f"pragma_{name}(?, ?)"
        return f"pragma_{name}(?)"

    @staticmethod
    def _pragma_params(arg: str, schema: Optional[str]) -> tuple:
        return (arg, schema) if schema else (arg,)

    @contextmanager
    def tables(
        self,
        coordinate: TableCoordinate,
        table_types: Optional[Sequence[str]] = None
    ):
        sql = (
            f"SELECT name, type FROM {self._master(coordinate.schema_name)} "
            "WHERE type IN ('table', 'view') AND name LIKE ? "
            "ORDER BY name"
        )
        wanted = {t.upper() for t in table_types} if table_types else None
        with self._query(sql, (coordinate.table_name,)) as rows:
            yield (
                {
                    'TABLE_CAT': None,
                    'TABLE_SCHEM': coordinate.schema_name or 'main',
                    'TABLE_NAME': row['name'],
                    'TABLE_TYPE': _TABLE_TYPES[row['type']],
                    'REMARKS': None,
                }
                for row in rows
                if wanted is None or _TABLE_TYPES[row['type']] in wanted
            )

    @contextmanager
    def columns(self, coordinate: TableCoordinate):
        # Read before the column cursor opens; the auto-increment lookup uses it
        self._table_facts.pop(coordinate, None)
        try:
            self._table_facts[coordinate] = self._read_table_facts(coordinate)
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Failed to read table facts of %s: %s", coordinate.table_name, e)
        schema = coordinate.schema_name
        sql = f"SELECT * FROM {self._pragma('table_info', schema)} ORDER BY cid"
        with self._query(sql, self._pragma_params(coordinate.table_name, schema)) as rows:
            yield (self._column_row(coordinate, row) for row in rows)

    @staticmethod
    def _column_row(coordinate: TableCoordinate, row: sqlite3.Row) -> MetadataRow:
        declared = row['type'] or ''
        base, size, scale = split_type_name(declared)
        return {
            'TABLE_NAME': coordinate.table_name,
            'COLUMN_NAME': row['name'],
            'DATA_TYPE': int(resolve_sql_type(declared)),
            'TYPE_NAME': base,
            'COLUMN_SIZE': size,
            'DECIMAL_DIGITS': scale,
            'NULLABLE': Nullability.NO_NULLS if row['notnull'] else Nullability.NULLABLE,
            'REMARKS': None,
            'COLUMN_DEF': row['dflt_value'],
            'ORDINAL_POSITION': row['cid'] + 1,
            'IS_AUTOINCREMENT': '',
        }

    @contextmanager
    def primary_keys(self, coordinate: TableCoordinate):
        schema = coordinate.schema_name
        sql = (
            f"SELECT name, pk FROM {self._pragma('table_info', schema)} "
            "WHERE pk > 0 ORDER BY pk"
        )
        with self._query(sql, self._pragma_params(coordinate.table_name, schema)) as rows:
            yield (
                {
                    'TABLE_NAME': coordinate.table_name,
                    'COLUMN_NAME': row['name'],
                    'KEY_SEQ': row['pk'],
                    'PK_NAME': None,
                }
                for row in rows
            )

    @contextmanager
    def index_info(self, coordinate: TableCoordinate, unique: bool):
        schema = coordinate.schema_name
        list_sql = f"SELECT * FROM {self._pragma('index_list', schema)} ORDER BY seq"
        with self._query(list_sql, self._pragma_params(coordinate.table_name, schema)) as indexes:
            selected = [idx for idx in indexes if idx['unique'] or not unique]

        result: List[MetadataRow] = []
        info_sql = f"SELECT * FROM {self._pragma('index_info', schema)} ORDER BY seqno"
        for idx in selected:
            with self._query(info_sql, self._pragma_params(idx['name'], schema)) as members:
                for member in members:
                    result.append({
                        'TABLE_NAME': coordinate.table_name,
                        'NON_UNIQUE': not idx['unique'],
                        'INDEX_NAME': idx['name'],
                        'ORDINAL_POSITION': member['seqno'] + 1,
                        # NULL for expression index members
                        'COLUMN_NAME': member['name'],
                    })
        yield iter(result)

    def _foreign_keys_of(self, table_name: str, schema: Optional[str]) -> List[MetadataRow]:
        sql = f"SELECT * FROM {self._pragma('foreign_key_list', schema)} ORDER BY id, seq"
        with self._query(sql, self._pragma_params(table_name, schema)) as rows:
            return [
                {
                    'PKTABLE_CAT': None,
                    'PKTABLE_SCHEM': schema,
                    'PKTABLE_NAME': row['table'],
                    'PKCOLUMN_NAME': row['to'],
                    'FKTABLE_CAT': None,
                    'FKTABLE_SCHEM': schema,
                    'FKTABLE_NAME': table_name,
                    'FKCOLUMN_NAME': row['from'],
                    'KEY_SEQ': row['seq'] + 1,
                    'FK_NAME': None,
                    'PK_NAME': None,
                }
                for row in rows
            ]

    @contextmanager
    def imported_keys(self, coordinate: TableCoordinate):
        yield iter(self._foreign_keys_of(coordinate.table_name, coordinate.schema_name))

    @contextmanager
    def exported_keys(self, coordinate: TableCoordinate):
        schema = coordinate.schema_name
        sql = (
            f"SELECT name FROM {self._master(schema)} "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        with self._query(sql) as rows:
            table_names = [row['name'] for row in rows]

        logger.debug("Scanning %d tables for keys referencing %s", len(table_names), coordinate.table_name)
        target = coordinate.table_name.lower()
        result = []
        for table_name in table_names:
            result.extend(
                fk for fk in self._foreign_keys_of(table_name, schema)
                if fk['PKTABLE_NAME'].lower() == target
            )
        yield iter(result)

    def _table_ddl(self, coordinate: TableCoordinate) -> Optional[str]:
        sql = (
            f"SELECT sql FROM {self._master(coordinate.schema_name)} "
            "WHERE type = 'table' AND name = ? COLLATE NOCASE"
        )
        with self._query(sql, (coordinate.table_name,)) as rows:
            row = next(rows, None)
        return row['sql'] if row else None

    def _read_table_facts(self, coordinate: TableCoordinate) -> _TableFacts:
        """Collect what the auto-increment lookup needs about a table.

        ``AUTOINCREMENT`` is found by parsing the DDL. A sole ``INTEGER
        PRIMARY KEY`` column aliases the rowid and is assigned automatically,
        unless the table is ``WITHOUT ROWID`` (which also rules out
        ``AUTOINCREMENT``).
        """
        ddl = self._table_ddl(coordinate)
        if not ddl or _WITHOUT_ROWID.search(ddl):
            return _TableFacts(frozenset(), None)

        schema = coordinate.schema_name
        sql = f"SELECT name, type FROM {self._pragma('table_info', schema)} WHERE pk > 0"
        with self._query(sql, self._pragma_params(coordinate.table_name, schema)) as rows:
            key_columns = list(rows)

        rowid_alias = None
        if len(key_columns) == 1 and split_type_name(key_columns[0]['type'] or '')[0] == 'INTEGER':
            rowid_alias = key_columns[0]['name'].lower()

        return _TableFacts(
            frozenset(find_autoincrement_columns(ddl, dialect='sqlite')),
            rowid_alias
        )

    def _lookup_autoincrement(self, row: MetadataRow, coordinate: TableCoordinate) -> bool:
        facts = self._table_facts.get(coordinate)
        if facts is None:
            facts = self._table_facts[coordinate] = self._read_table_facts(coordinate)
        column_name = row['COLUMN_NAME'].lower()
        return column_name in facts.autoincrement or column_name == facts.rowid_alias
