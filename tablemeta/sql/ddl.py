"""DDL inspection helpers for catalog facts engines do not expose directly."""
import logging
from typing import Set

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError

logger = logging.getLogger(__name__)

_AUTOINCREMENT_CONSTRAINTS = (
    exp.AutoIncrementColumnConstraint,
    exp.GeneratedAsIdentityColumnConstraint,
)


def find_autoincrement_columns(ddl: str, dialect: str = 'sqlite') -> Set[str]:
    """Find columns declared AUTOINCREMENT / AUTO_INCREMENT / IDENTITY in DDL.

    Args:
        ddl: CREATE TABLE statement text
        dialect: sqlglot dialect used for parsing

    Returns:
        Lower-cased names of auto-increment columns. Empty set if the DDL is
        missing, is not a CREATE TABLE, or cannot be parsed.
    """
    if not ddl:
        return set()

    try:
        statements = sqlglot.parse(ddl, read=dialect)
    except ParseError as e:
        logger.warning("Could not parse table DDL for auto-increment lookup: %s", e)
        return set()

    columns = set()
    for stmt in statements:
        if not isinstance(stmt, exp.Create):
            continue
        schema_def = stmt.this
        if not isinstance(schema_def, exp.Schema):
            continue

        for col_expr in schema_def.expressions:
            if not isinstance(col_expr, exp.ColumnDef):
                continue
            for constraint in col_expr.constraints or []:
                kind = constraint.kind if isinstance(constraint, exp.ColumnConstraint) else constraint
                if isinstance(kind, _AUTOINCREMENT_CONSTRAINTS):
                    columns.add(col_expr.name.lower())
                    break

    logger.debug("Auto-increment columns found in DDL: %s", sorted(columns))
    return columns


def render_table_name(
    table: str,
    schema: str = None,
    catalog: str = None,
    dialect: str = 'snowflake'
) -> str:
    """Render a (possibly qualified) table name as a dialect-correct identifier."""
    return exp.table_(table, db=schema or None, catalog=catalog or None).sql(dialect=dialect)


def render_identifier(name: str, dialect: str = 'snowflake') -> str:
    """Render a single identifier, quoting it only when required."""
    return exp.to_identifier(name).sql(dialect=dialect)
