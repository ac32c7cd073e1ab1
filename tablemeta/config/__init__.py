"""Configuration management."""
from tablemeta.config.table import (
    TableConfigError,
    TableConfiguration,
    load_table_configs,
)

__all__ = [
    'TableConfigError',
    'TableConfiguration',
    'load_table_configs',
]
