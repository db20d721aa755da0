from __future__ import annotations

from .constants import DEFAULT_REGISTRY_URL, NetworkFamily
from .core.config import DictionaryConfig
from .core.models import BlockHeightMap, Datasource, DictionaryFilter, QueryResult
from .registry.resolver import resolve_dictionary
from .services.dictionary_service import DictionaryService

__all__ = [
    "DictionaryService",
    "DictionaryConfig",
    "resolve_dictionary",
    "BlockHeightMap",
    "Datasource",
    "DictionaryFilter",
    "QueryResult",
    "NetworkFamily",
    "DEFAULT_REGISTRY_URL",
]
