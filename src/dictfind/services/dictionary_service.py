"""Dictionary service: height-aware selection with bounded failover.

The service owns a fixed, ordered pool of dictionaries and a shared
`current_dictionary_index` hint. For each `scoped_dictionary_entries` call it
runs an explicit loop:

    select -> query -> (done | exclude and select again | exhausted)

Exclusions live only for the duration of one call, so a dictionary that
failed once is tried again by the next call. Attempts per call never exceed
the pool size.

`current_dictionary_index` is read and written without a lock. Concurrent
calls may overwrite each other's choice; every use re-runs
`height_validation`, so the worst case is one extra selection, never data
from a dictionary that cannot serve the height.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from enum import Enum
from typing import List

from dictfind.core.config import DictionaryConfig
from dictfind.core.errors import DictionaryConfigError
from dictfind.core.interfaces import IDictionary, IRegistryResolver
from dictfind.core.models import BlockHeightMap, Datasource, DictionaryQueryEntry, QueryResult
from dictfind.dictionaries.factory import create_dictionaries
from dictfind.registry.resolver import RegistryResolver
from dictfind.services.entry_map import build_ds_entry_map

logger = logging.getLogger(__name__)

DictionaryFactory = Callable[[Sequence[str], DictionaryConfig], Awaitable[List[IDictionary]]]


async def _default_factory(endpoints: Sequence[str], config: DictionaryConfig) -> List[IDictionary]:
    return await create_dictionaries(
        endpoints,
        config.chain_id,
        timeout_s=config.timeout_s,
        max_connections=config.max_connections,
    )


class DictionaryService:
    """
    Orchestrates a pool of dictionaries for the block-processing pipeline.

    The pool is installed once, either directly via `init(dictionaries)` or
    from configuration via `init_dictionaries()`. The service only depends on
    the `IDictionary` protocol.
    """

    def __init__(
        self,
        config: DictionaryConfig | None = None,
        *,
        registry_resolver: IRegistryResolver | None = None,
        dictionary_factory: DictionaryFactory | None = None,
    ) -> None:
        self._config = config
        self._registry_resolver = registry_resolver or RegistryResolver()
        self._dictionary_factory = dictionary_factory or _default_factory
        self._dictionaries: tuple[IDictionary, ...] = ()
        self._ds_entry_map: BlockHeightMap[List[DictionaryQueryEntry]] = BlockHeightMap({})
        self.current_dictionary_index: int | None = None

    async def __aenter__(self) -> DictionaryService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def dictionaries(self) -> tuple[IDictionary, ...]:
        return self._dictionaries

    @property
    def ds_entry_map(self) -> BlockHeightMap[List[DictionaryQueryEntry]]:
        return self._ds_entry_map

    # ------------------------------------------------------------------
    # Pool construction
    # ------------------------------------------------------------------

    def init(self, dictionaries: Iterable[IDictionary]) -> None:
        """Install the fixed dictionary pool."""
        if self._dictionaries:
            raise RuntimeError("dictionary pool is already initialised")
        self._dictionaries = tuple(dictionaries)
        if len(self._ds_entry_map):
            for dictionary in self._dictionaries:
                dictionary.update_queries_map(self._ds_entry_map)

    async def get_dictionary_endpoints(self) -> list[str]:
        """Explicit endpoints first, then registry ones not already listed."""
        config = self._require_config()
        endpoints = list(dict.fromkeys(config.endpoints))

        if not config.use_registry:
            if not endpoints:
                raise DictionaryConfigError("no dictionary endpoints configured and registry lookup is disabled")
            return endpoints

        family = config.network_family.value if isinstance(config.network_family, Enum) else config.network_family
        for url in await self._registry_resolver.resolve(family, config.chain_id, config.registry_url):
            if url not in endpoints:
                endpoints.append(url)
        return endpoints

    async def init_dictionaries(self) -> None:
        """Resolve endpoints, build and probe one dictionary per endpoint, install the pool."""
        config = self._require_config()
        endpoints = await self.get_dictionary_endpoints()
        if not endpoints:
            logger.warning("No dictionary available for chain %s, blocks will be scanned directly", config.chain_id)
            self.init([])
            return

        dictionaries = await self._dictionary_factory(endpoints, config)
        await asyncio.gather(*(d.init() for d in dictionaries))
        usable = sum(1 for d in dictionaries if d.metadata.last_processed_height is not None)
        logger.info("Initialised %d dictionaries (%d usable) for chain %s", len(dictionaries), usable, config.chain_id)
        self.init(dictionaries)

    def _require_config(self) -> DictionaryConfig:
        if self._config is None:
            raise DictionaryConfigError("DictionaryService was created without a DictionaryConfig")
        return self._config

    async def aclose(self) -> None:
        """Release every dictionary; the pool is empty afterwards."""
        dictionaries, self._dictionaries = self._dictionaries, ()
        self.current_dictionary_index = None
        await asyncio.gather(*(d.aclose() for d in dictionaries))

    # ------------------------------------------------------------------
    # Datasources
    # ------------------------------------------------------------------

    def build_dictionary_entry_map(self, ds_map: BlockHeightMap[Sequence[Datasource]]) -> None:
        """Rebuild the entry map from datasources and hand it to every dictionary."""
        entry_map = build_ds_entry_map(ds_map)
        self._ds_entry_map = entry_map
        for dictionary in self._dictionaries:
            dictionary.update_queries_map(entry_map)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _find_index(self, height: int, excluded: set[int]) -> int | None:
        n = len(self._dictionaries)
        if n == 0:
            return None

        current = self.current_dictionary_index
        if current is not None and current >= n:
            current = None
        if current is not None and current not in excluded and self._dictionaries[current].height_validation(height):
            return current

        start = 0 if current is None else (current + 1) % n
        for offset in range(n):
            i = (start + offset) % n
            if i == current or i in excluded:
                continue
            if self._dictionaries[i].height_validation(height):
                self.current_dictionary_index = i
                return i
        return None

    def find_dictionary(self, height: int, excluded: set[int]) -> IDictionary | None:
        """Select the first non-excluded dictionary valid for `height`, scanning forward from the current one."""
        index = self._find_index(height, excluded)
        return None if index is None else self._dictionaries[index]

    def get_dictionary(self, height: int) -> IDictionary | None:
        return self.find_dictionary(height, set())

    def use_dictionary(self, height: int) -> bool:
        return self.get_dictionary(height) is not None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def scoped_dictionary_entries(self, start_block: int, end_block: int, batch_size: int) -> QueryResult | None:
        """
        Fetch dictionary entries for [start_block, end_block] with failover.

        Returns None when no dictionary could answer (or none filters this
        range); the caller then scans blocks directly.
        """
        excluded: set[int] = set()
        n = len(self._dictionaries)

        while len(excluded) < n:
            index = self._find_index(start_block, excluded)
            if index is None:
                break
            dictionary = self._dictionaries[index]
            try:
                return await dictionary.get_data(start_block, end_block, batch_size)
            except Exception as e:
                excluded.add(index)
                logger.warning(
                    "Dictionary %s failed for heights %d-%d (%d/%d tried): %s",
                    dictionary.endpoint,
                    start_block,
                    end_block,
                    len(excluded),
                    n,
                    e,
                )

        logger.debug("No dictionary available for heights %d-%d", start_block, end_block)
        return None
