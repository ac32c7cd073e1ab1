"""Common test fixtures."""
# pylint: disable=redefined-outer-name
import sqlite3
from contextlib import contextmanager
from unittest.mock import MagicMock

import pytest

from tablemeta.config.table import TableConfiguration
from tablemeta.metadata.base import CatalogMetadataProvider, Nullability
from tablemeta.models.sql_types import SqlType


class FakeMetadataProvider(CatalogMetadataProvider):
    """Synthetic provider serving canned rows per facet.

    A facet value may be a list of rows, an exception (raised when the
    stream is opened) or a callable returning an iterator (to fail
    part-way through a stream). Every opened stream is recorded in
    ``calls`` and every released one in ``released``.
    """

    engine = 'fake'

    def __init__(self, facets=None):
        super().__init__(connection=None)
        self.facets = facets or {}
        self.calls = []
        self.released = []

    @contextmanager
    def _stream(self, facet):
        self.calls.append(facet)
        try:
            data = self.facets.get(facet, [])
            if isinstance(data, Exception):
                raise data
            if callable(data):
                data = data()
            yield iter(data)
        finally:
            self.released.append(facet)

    def tables(self, coordinate, table_types=None):
        return self._stream('tables')

    def columns(self, coordinate):
        return self._stream('columns')

    def primary_keys(self, coordinate):
        return self._stream('primary_keys')

    def index_info(self, coordinate, unique):
        return self._stream('unique_index_info' if unique else 'index_info')

    def exported_keys(self, coordinate):
        return self._stream('exported_keys')

    def imported_keys(self, coordinate):
        return self._stream('imported_keys')


@pytest.fixture
def column_row_factory():
    """Factory to create column-listing rows."""
    def _make_row(
        column_name="col",
        data_type=SqlType.VARCHAR,
        type_name="VARCHAR",
        column_size=0,
        decimal_digits=0,
        nullable=Nullability.NULLABLE,
        remarks=None,
        column_def=None,
        is_autoincrement="NO"
    ):
        return {
            'TABLE_NAME': 'users',
            'COLUMN_NAME': column_name,
            'DATA_TYPE': int(data_type),
            'TYPE_NAME': type_name,
            'COLUMN_SIZE': column_size,
            'DECIMAL_DIGITS': decimal_digits,
            'NULLABLE': nullable,
            'REMARKS': remarks,
            'COLUMN_DEF': column_def,
            'IS_AUTOINCREMENT': is_autoincrement,
        }
    return _make_row


@pytest.fixture
def users_facets(column_row_factory):
    """Catalog rows for a users(id, email, bio) table."""
    return {
        'tables': [{
            'TABLE_CAT': None,
            'TABLE_SCHEM': 'public',
            'TABLE_NAME': 'users',
            'TABLE_TYPE': 'TABLE',
            'REMARKS': 'application users',
        }],
        'columns': [
            column_row_factory('id', SqlType.INTEGER, 'INTEGER', 10,
                               nullable=Nullability.NO_NULLS, is_autoincrement='YES'),
            column_row_factory('email', SqlType.VARCHAR, 'VARCHAR', 255,
                               nullable=Nullability.NO_NULLS, remarks='login address'),
            column_row_factory('bio', SqlType.VARCHAR, 'TEXT'),
        ],
        'primary_keys': [
            {'TABLE_NAME': 'users', 'COLUMN_NAME': 'id', 'KEY_SEQ': 1, 'PK_NAME': 'pk_users'},
        ],
        'index_info': [
            {'TABLE_NAME': 'users', 'NON_UNIQUE': False, 'INDEX_NAME': 'pk_users',
             'ORDINAL_POSITION': 1, 'COLUMN_NAME': 'id'},
            {'TABLE_NAME': 'users', 'NON_UNIQUE': False, 'INDEX_NAME': 'ux_users_email',
             'ORDINAL_POSITION': 1, 'COLUMN_NAME': 'email'},
        ],
        'unique_index_info': [
            {'TABLE_NAME': 'users', 'NON_UNIQUE': False, 'INDEX_NAME': 'pk_users',
             'ORDINAL_POSITION': 1, 'COLUMN_NAME': 'id'},
            {'TABLE_NAME': 'users', 'NON_UNIQUE': False, 'INDEX_NAME': 'ux_users_email',
             'ORDINAL_POSITION': 1, 'COLUMN_NAME': 'email'},
        ],
        'exported_keys': [
            {'PKTABLE_NAME': 'users', 'PKCOLUMN_NAME': 'id', 'FKTABLE_NAME': 'orders',
             'FKCOLUMN_NAME': 'user_id', 'KEY_SEQ': 1, 'FK_NAME': 'fk_orders_user'},
        ],
        'imported_keys': [],
    }


@pytest.fixture
def fake_provider_factory():
    """Factory to create FakeMetadataProvider instances."""
    def _make_provider(facets=None):
        return FakeMetadataProvider(facets)
    return _make_provider


@pytest.fixture
def users_provider(fake_provider_factory, users_facets):
    """Fake provider describing the users table."""
    return fake_provider_factory(users_facets)


@pytest.fixture
def table_config_factory():
    """Factory to create TableConfiguration instances."""
    def _make_config(table_name="users", class_name=None, catalog=None, schema=None):
        return TableConfiguration(
            table_name=table_name,
            class_name=class_name,
            catalog=catalog,
            schema_name=schema
        )
    return _make_config


@pytest.fixture
def dummy_connection():
    """Stand-in connection for tests that inject a provider."""
    return MagicMock()


@pytest.fixture
def sqlite_conn():
    """In-memory SQLite database with users, orders and a view."""
    conn = sqlite3.connect(":memory:")
    conn.executescript(
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT NOT NULL,
            email VARCHAR(255) NOT NULL UNIQUE,
            bio TEXT
        );
        CREATE TABLE orders (
            order_id INTEGER PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id),
            status VARCHAR(20) DEFAULT 'new',
            total DECIMAL(10,2)
        );
        CREATE INDEX ix_orders_user ON orders(user_id);
        CREATE TABLE order_items (
            order_id INTEGER NOT NULL,
            line_no INTEGER NOT NULL,
            sku TEXT,
            PRIMARY KEY (order_id, line_no),
            FOREIGN KEY (order_id) REFERENCES orders(order_id)
        );
        CREATE VIEW active_users AS SELECT id, email FROM users;
        """
    )
    yield conn
    conn.close()
