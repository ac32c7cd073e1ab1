"""Tests for table assembly."""
# pylint: disable=redefined-outer-name
import logging

import pytest

from tablemeta.core.assembler import (
    IntrospectionPreconditionError,
    TableAssembler,
    introspect_table,
)
from tablemeta.core.utils import to_camel


@pytest.fixture
def assembler(dummy_connection, users_provider):
    """Assembler wired to the fake users provider."""
    return TableAssembler(dummy_connection, provider=users_provider)


def test_users_table_scenario(assembler, table_config_factory):
    """Test the users table is assembled with keys, indexes and nullability."""
    table = assembler.introspect_table(table_config_factory("users"))

    assert table is not None
    assert table.class_name == "Users"
    assert table.remark == "application users"
    assert table.table_type == "TABLE"
    assert table.primary_key_count == 1
    assert [c.column_name for c in table.primary_key_columns] == ["id"]
    assert [c.column_name for c in table.non_primary_key_columns] == ["email", "bio"]

    email = table.column("email")
    assert email.is_unique_indexed is True
    assert email.is_indexed is True
    assert email.nullable is False
    assert email.remark == "login address"
    assert email.column_size == 255

    assert table.column("bio").nullable is True
    assert table.column("id").is_auto_increment is True
    assert table.column("id").is_primary_key is True
    assert table.warnings == []


def test_primary_key_flag_matches_key_set(assembler, table_config_factory, users_facets):
    """Test is_primary_key holds exactly for names in the primary key listing."""
    table = assembler.introspect_table(table_config_factory("users"))
    pk_names = {row['COLUMN_NAME'] for row in users_facets['primary_keys']}

    for column in table.columns:
        assert column.is_primary_key == (column.column_name in pk_names)


def test_partition_preserves_column_order(dummy_connection, fake_provider_factory,
                                          users_facets, column_row_factory, table_config_factory):
    """Test composite keys are partitioned in column order, not key order."""
    users_facets['columns'] = [
        column_row_factory('tenant_id'),
        column_row_factory('name'),
        column_row_factory('user_id'),
        column_row_factory('created_at'),
    ]
    users_facets['primary_keys'] = [
        {'COLUMN_NAME': 'user_id', 'KEY_SEQ': 1},
        {'COLUMN_NAME': 'tenant_id', 'KEY_SEQ': 2},
    ]
    provider = fake_provider_factory(users_facets)

    table = TableAssembler(dummy_connection, provider=provider).introspect_table(
        table_config_factory("users")
    )

    assert [c.column_name for c in table.primary_key_columns] == ["tenant_id", "user_id"]
    assert [c.column_name for c in table.non_primary_key_columns] == ["name", "created_at"]
    assert table.primary_key_count == len(table.primary_key_columns) == 2
    all_names = {c.column_name for c in table.columns}
    pk_names = {c.column_name for c in table.primary_key_columns}
    other_names = {c.column_name for c in table.non_primary_key_columns}
    assert pk_names | other_names == all_names
    assert not pk_names & other_names


@pytest.mark.parametrize("override", [None, "", "   "])
def test_class_name_defaults_to_camel_case(assembler, table_config_factory, override):
    """Test a blank or absent class name falls back to the camel-cased table name."""
    table = assembler.introspect_table(table_config_factory("users", class_name=override))
    assert table.class_name == to_camel("users") == "Users"


def test_class_name_override_wins(assembler, table_config_factory):
    """Test an explicit class name is used verbatim."""
    table = assembler.introspect_table(table_config_factory("users", class_name="AppUser"))
    assert table.class_name == "AppUser"


def test_class_name_override_kept_verbatim(assembler, table_config_factory):
    """Test surrounding whitespace in an override is not trimmed."""
    table = assembler.introspect_table(table_config_factory("users", class_name=" AppUser "))
    assert table.class_name == " AppUser "


def test_missing_table_returns_none(dummy_connection, fake_provider_factory,
                                    table_config_factory, caplog):
    """Test a table with no catalog row yields None without extracting columns."""
    provider = fake_provider_factory({'tables': []})
    assembler = TableAssembler(dummy_connection, provider=provider)

    with caplog.at_level(logging.WARNING):
        table = assembler.introspect_table(table_config_factory("ghost"))

    assert table is None
    assert provider.calls == ['tables']
    assert 'columns' not in provider.calls
    assert "Table not found in database: ghost" in caplog.text


def test_table_lookup_failure_returns_none(dummy_connection, fake_provider_factory,
                                           table_config_factory, caplog):
    """Test a failing table lookup is logged and treated as not introspectable."""
    provider = fake_provider_factory({'tables': RuntimeError("connection dropped")})

    table = TableAssembler(dummy_connection, provider=provider).introspect_table(
        table_config_factory("users")
    )

    assert table is None
    assert provider.released == ['tables']
    assert "Failed to look up table users: connection dropped" in caplog.text


@pytest.mark.parametrize("table_name", ["", "   "])
def test_blank_table_name_is_fatal(assembler, table_config_factory, table_name):
    """Test a blank table name raises a precondition error."""
    with pytest.raises(IntrospectionPreconditionError, match="table_name"):
        assembler.introspect_table(table_config_factory(table_name))


def test_missing_configuration_is_fatal(assembler):
    """Test introspection without any configuration raises."""
    with pytest.raises(IntrospectionPreconditionError):
        assembler.introspect_table()


def test_missing_connection_is_fatal(users_provider):
    """Test construction without a connection raises."""
    with pytest.raises(IntrospectionPreconditionError, match="connection"):
        TableAssembler(None, provider=users_provider)


def test_index_failure_degrades_flags_only(dummy_connection, fake_provider_factory,
                                           users_facets, table_config_factory, caplog):
    """Test failing index queries leave every other column fact intact."""
    users_facets['index_info'] = RuntimeError("index listing unavailable")
    users_facets['unique_index_info'] = RuntimeError("index listing unavailable")
    provider = fake_provider_factory(users_facets)

    table = TableAssembler(dummy_connection, provider=provider).introspect_table(
        table_config_factory("users")
    )

    assert [c.column_name for c in table.columns] == ["id", "email", "bio"]
    assert all(not c.is_indexed and not c.is_unique_indexed for c in table.columns)
    assert table.column("id").is_primary_key is True
    assert table.column("email").sql_type_name == "VARCHAR"
    assert table.column("email").column_size == 255
    assert table.column("bio").nullable is True
    assert len(table.warnings) == 2
    assert table.warnings[0].startswith("indexed_columns unavailable")
    assert "Failed to fetch indexed_columns" in caplog.text
    assert "Failed to fetch unique_indexed_columns" in caplog.text


def test_column_failure_returns_partial_table(dummy_connection, fake_provider_factory,
                                              users_facets, table_config_factory):
    """Test a column stream failing part-way keeps the columns read so far."""
    rows = list(users_facets['columns'])

    def _failing_stream():
        yield rows[0]
        raise RuntimeError("cursor closed")

    users_facets['columns'] = _failing_stream
    provider = fake_provider_factory(users_facets)

    table = TableAssembler(dummy_connection, provider=provider).introspect_table(
        table_config_factory("users")
    )

    assert [c.column_name for c in table.columns] == ["id"]
    assert table.primary_key_count == 1
    assert table.warnings == ["columns incomplete: RuntimeError: cursor closed"]


def test_every_stream_is_released(assembler, users_provider, table_config_factory):
    """Test each opened result stream is closed before introspection returns."""
    assembler.introspect_table(table_config_factory("users"))

    assert sorted(users_provider.calls) == sorted(users_provider.released)
    assert users_provider.calls == [
        'tables', 'primary_keys', 'index_info', 'unique_index_info',
        'exported_keys', 'imported_keys', 'columns',
    ]


def test_foreign_keys_attached(assembler, table_config_factory):
    """Test exported and imported keys are carried on the descriptor."""
    table = assembler.introspect_table(table_config_factory("users"))

    assert table.imported_keys == []
    assert len(table.exported_keys) == 1
    assert table.exported_keys[0].fk_table_name == "orders"
    assert table.exported_keys[0].fk_column_name == "user_id"


def test_injected_logger_receives_diagnostics(dummy_connection, users_provider,
                                              table_config_factory, caplog):
    """Test progress and summary messages go to the injected logger."""
    logger = logging.getLogger("codegen.introspection")
    assembler = TableAssembler(dummy_connection, provider=users_provider, logger=logger)

    with caplog.at_level(logging.DEBUG, logger="codegen.introspection"):
        assembler.introspect_table(table_config_factory("users"))

    messages = [r.getMessage() for r in caplog.records if r.name == "codegen.introspection"]
    assert "Introspecting table: users" in messages
    assert [m for m in messages if m.startswith("Resolved column:")] == [
        "Resolved column: id", "Resolved column: email", "Resolved column: bio"
    ]
    assert "Resolved 3 columns of users" in messages


def test_introspect_tables(dummy_connection, fake_provider_factory, users_facets,
                           table_config_factory):
    """Test several configured tables are introspected serially."""
    provider = fake_provider_factory(users_facets)
    assembler = TableAssembler(dummy_connection, provider=provider)

    results = assembler.introspect_tables([
        table_config_factory("users"),
        table_config_factory("users", class_name="Member", schema="archive"),
    ])

    assert list(results) == ["users", "archive.users"]
    assert results["users"].class_name == "Users"
    assert results["archive.users"].class_name == "Member"
    assert results["archive.users"].schema_name == "archive"
    assert provider.calls.count('tables') == 2


def test_default_configuration_used(dummy_connection, users_provider, table_config_factory):
    """Test the configuration given at construction is used by default."""
    assembler = TableAssembler(
        dummy_connection, table_config_factory("users", schema="public"), provider=users_provider
    )

    table = assembler.introspect_table()

    assert table.schema_name == "public"


def test_module_level_introspect_table(sqlite_conn, table_config_factory):
    """Test the convenience function detects the provider from the connection."""
    table = introspect_table(sqlite_conn, table_config_factory("orders"))

    assert table.class_name == "Orders"
    assert [c.column_name for c in table.primary_key_columns] == ["order_id"]
