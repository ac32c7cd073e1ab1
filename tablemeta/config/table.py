"""Per-table introspection settings."""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tablemeta.core.utils import parse_identifier

logger = logging.getLogger(__name__)


class TableConfigError(ValueError):
    """Raised when table configuration loading fails."""


class TableConfiguration(BaseModel):
    """Which table to introspect and how to name its generated class.

    A plain value holder: a blank ``table_name`` is accepted here and
    rejected when introspection starts.
    """

    table_name: str = ""
    class_name: Optional[str] = None
    catalog: Optional[str] = None
    schema_name: Optional[str] = Field(default=None, alias="schema")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "table_name": "users",
                "class_name": "User",
                "catalog": "PROD",
                "schema": "PUBLIC"
            }
        }
    )

    @classmethod
    def from_identifier(
        cls,
        identifier: str,
        class_name: Optional[str] = None
    ) -> "TableConfiguration":
        """Build a configuration from TABLE, SCHEMA.TABLE or CATALOG.SCHEMA.TABLE."""
        catalog, schema, table = parse_identifier(identifier)
        return cls(
            table_name=table,
            class_name=class_name,
            catalog=catalog or None,
            schema_name=schema or None
        )


def load_table_configs(file_path: str) -> List[TableConfiguration]:
    """Load table configurations from a YAML file.

    The file holds either a single table mapping or a ``tables`` list:

        tables:
          - table_name: users
            class_name: User
          - table_name: orders
            schema: sales

    Raises:
        TableConfigError: If the file is missing, malformed or has invalid entries
    """
    data = _read_yaml(file_path)
    entries = data.get('tables', [data])

    if not isinstance(entries, list):
        raise TableConfigError(f"'tables' must be a list in {file_path}")

    configs = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise TableConfigError(f"Table entry must be a mapping in {file_path}: {entry!r}")
        try:
            configs.append(TableConfiguration(**entry))
        except ValidationError as e:
            raise TableConfigError(f"Invalid table entry in {file_path}: {e}") from e

    logger.info("Loaded %d table configurations from %s", len(configs), file_path)
    return configs


def _read_yaml(file_path: str) -> Dict[str, Any]:
    path = Path(file_path)
    if not path.exists():
        raise TableConfigError(f"Table configuration file not found: {file_path}")

    try:
        with path.open('r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise TableConfigError(f"Invalid YAML in table configuration: {file_path}\n{e}") from e
    except OSError as e:
        raise TableConfigError(f"Error reading table configuration: {file_path}\n{e}") from e

    if not isinstance(data, dict):
        raise TableConfigError(f"Table configuration must be a YAML mapping: {file_path}")
    return data
