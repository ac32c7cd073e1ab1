"""Catalog metadata provider registry and factory."""
import logging
import sqlite3
from typing import Any, Dict, Optional, Type

from tablemeta.metadata.base import CatalogMetadataProvider, Nullability
from tablemeta.metadata.snowflake import SnowflakeMetadataProvider
from tablemeta.metadata.snowflake import connect as snowflake_connect
from tablemeta.metadata.sqlite import SqliteMetadataProvider

logger = logging.getLogger(__name__)


class UnsupportedEngineError(ValueError):
    """Raised when no metadata provider exists for an engine or connection."""


# Registry of available metadata providers
# Format: engine name -> provider class
METADATA_PROVIDERS: Dict[str, Type[CatalogMetadataProvider]] = {
    'sqlite': SqliteMetadataProvider,
    'snowflake': SnowflakeMetadataProvider,
}

# Connection class module prefix -> engine name
_CONNECTION_MODULES = {
    'sqlite3': 'sqlite',
    'snowflake.connector': 'snowflake',
}


def detect_engine(connection) -> Optional[str]:
    """Guess the engine name from a DB-API connection's type.

    Returns:
        Engine name, or None if the connection type is not recognized
    """
    if isinstance(connection, sqlite3.Connection):
        return 'sqlite'

    module = type(connection).__module__ or ''
    for prefix, engine in _CONNECTION_MODULES.items():
        if module == prefix or module.startswith(prefix + '.'):
            return engine
    return None


def get_provider(connection, engine: Optional[str] = None) -> CatalogMetadataProvider:
    """Get a metadata provider wrapping a caller-owned connection.

    Args:
        connection: Open DB-API connection
        engine: Engine name (sqlite, snowflake); detected from the
            connection type when omitted

    Returns:
        CatalogMetadataProvider instance for the connection

    Raises:
        UnsupportedEngineError: If the engine is unknown or cannot be detected
    """
    engine_name = engine or detect_engine(connection)
    if not engine_name:
        raise UnsupportedEngineError(
            f"Cannot detect database engine for connection type "
            f"'{type(connection).__name__}'. "
            f"Pass engine explicitly; supported: {', '.join(METADATA_PROVIDERS.keys())}"
        )

    provider_class = METADATA_PROVIDERS.get(engine_name.lower())
    if provider_class is None:
        raise UnsupportedEngineError(
            f"Unsupported engine: '{engine_name}'. "
            f"Supported engines: {', '.join(METADATA_PROVIDERS.keys())}"
        )

    logger.debug("Creating metadata provider for engine: %s", engine_name.lower())
    return provider_class(connection)


def list_supported_engines() -> list[str]:
    """Get list of engines with a metadata provider."""
    return list(METADATA_PROVIDERS.keys())


def open_connection(engine: str, config: Dict[str, Any]):
    """Open a connection for an engine from a connection config dictionary.

    The introspection pipeline never calls this; it is for callers that keep
    their connection settings in config files.

    Raises:
        UnsupportedEngineError: If the engine is unknown
    """
    engine_name = engine.lower()
    if engine_name == 'sqlite':
        conn = sqlite3.connect(config['database'])
        logger.info("Opened SQLite database: %s", config['database'])
        return conn
    if engine_name == 'snowflake':
        return snowflake_connect(config)
    raise UnsupportedEngineError(
        f"Unsupported engine: '{engine}'. "
        f"Supported engines: {', '.join(METADATA_PROVIDERS.keys())}"
    )


__all__ = [
    'CatalogMetadataProvider',
    'Nullability',
    'SnowflakeMetadataProvider',
    'SqliteMetadataProvider',
    'UnsupportedEngineError',
    'detect_engine',
    'get_provider',
    'list_supported_engines',
    'open_connection',
]
