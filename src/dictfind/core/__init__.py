"""Core data models, interfaces, configuration and errors.

This package provides:
- Data models (DictionaryMetadata, QueryResult, Datasource, BlockHeightMap)
- Protocols (IDictionary, IRegistryResolver)
- Configuration (DictionaryConfig)
"""

from dictfind.core.config import DictionaryConfig
from dictfind.core.errors import DictionaryConfigError, DictionaryError, DictionaryQueryError, DictionaryVersionError
from dictfind.core.interfaces import IDictionary, IRegistryResolver
from dictfind.core.models import (
    BlockHeightMap,
    Datasource,
    DictionaryFilter,
    DictionaryMetadata,
    DictionaryQueryEntry,
    QueryResult,
)

__all__ = [
    "DictionaryConfig",
    "DictionaryError",
    "DictionaryConfigError",
    "DictionaryQueryError",
    "DictionaryVersionError",
    "IDictionary",
    "IRegistryResolver",
    "BlockHeightMap",
    "Datasource",
    "DictionaryFilter",
    "DictionaryMetadata",
    "DictionaryQueryEntry",
    "QueryResult",
]
