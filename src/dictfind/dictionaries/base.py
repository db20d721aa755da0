"""Shared scaffolding for HTTP dictionary adapters.

`HttpDictionary` owns everything both protocol generations have in common:
- the async HTTP client (timeouts / connection limits) and its release hook
- metadata, `height_validation` and the idempotent `init()` probe
- the per-height queries map rebuilt from the dictionary entry map
- range clamping and batch finalising for `get_data`

Subclasses only implement `_fetch_metadata`, `_build_query` and `_query`.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, List, NamedTuple, TypeVar

import httpx

from dictfind.constants import DEFAULT_MAX_CONNECTIONS, DEFAULT_TIMEOUT_S
from dictfind.core.errors import DictionaryError, DictionaryQueryError
from dictfind.core.models import (
    EMPTY_METADATA,
    BlockHeightMap,
    DictionaryMetadata,
    DictionaryQueryEntry,
    QueryResult,
)

logger = logging.getLogger(__name__)

Q = TypeVar("Q")


class RawBatch(NamedTuple):
    """Unfinalised backend answer: (height, entry) pairs plus how far the backend scanned."""

    blocks: list[tuple[int, dict[str, Any] | None]]
    scanned_to: int | None = None


def make_client(timeout_s: int, max_connections: int) -> httpx.AsyncClient:
    """Async HTTP client with per-operation timeouts."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=timeout_s,
            read=timeout_s,
            write=timeout_s,
            pool=max(30, timeout_s * 3),
        ),
        limits=httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max(1, max_connections // 2),
        ),
        http2=True,
    )


class HttpDictionary(ABC, Generic[Q]):
    """Base for dictionaries reached over HTTP.

    Parameters
    ----------
    endpoint : str
        Dictionary endpoint URL.
    chain_id : str
        Chain identity (genesis hash or chain id) this instance must serve.
    timeout_s : int
        Per-query timeout in seconds.
    client : httpx.AsyncClient | None
        Optional pre-built client; the dictionary closes it on `aclose()`.
    """

    kind: ClassVar[str]

    def __init__(
        self,
        endpoint: str,
        chain_id: str | int,
        *,
        timeout_s: int = DEFAULT_TIMEOUT_S,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.chain_id = str(chain_id)
        self.client = client or make_client(timeout_s, max_connections)
        self._metadata: DictionaryMetadata = EMPTY_METADATA
        self._queries_map: BlockHeightMap[Q | None] = BlockHeightMap({})
        self._initialized = False
        self._init_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.endpoint!r})"

    @property
    def metadata(self) -> DictionaryMetadata:
        return self._metadata

    # --- lifecycle ---------------------------------------------------------

    async def init(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return
            try:
                metadata = await self._fetch_metadata()
            except DictionaryError as e:
                self._initialized = True
                logger.warning("Dictionary %s unavailable, skipping it: %s", self.endpoint, e)
                return
            self._initialized = True
            self._accept_metadata(metadata)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    def _accept_metadata(self, metadata: DictionaryMetadata) -> bool:
        """Install `metadata` if it reports our chain; otherwise drop to empty metadata."""
        if not metadata.matches_chain(self.chain_id):
            logger.warning(
                "Dictionary %s serves chain %s, expected %s; skipping it",
                self.endpoint,
                metadata.genesis_hash or metadata.chain,
                self.chain_id,
            )
            self._metadata = EMPTY_METADATA
            return False
        self._metadata = metadata
        return True

    # --- validity ----------------------------------------------------------

    def height_validation(self, height: int) -> bool:
        return self._metadata.covers(height)

    # --- queries -----------------------------------------------------------

    def update_queries_map(self, ds_entry_map: BlockHeightMap[List[DictionaryQueryEntry]]) -> None:
        # An empty entry list means nothing to filter on for that segment
        self._queries_map = ds_entry_map.map(lambda entries: self._build_query(entries) if entries else None)

    def _query_end(self, start_height: int, end_height: int) -> int:
        """Clamp `end_height` to backend freshness and to the next datasource change."""
        end = end_height
        covered_until = self._metadata.covered_until(start_height)
        if covered_until is not None:
            end = min(end, covered_until)
        next_change = self._queries_map.next_change_after(start_height)
        if next_change is not None:
            end = min(end, next_change - 1)
        return end

    async def get_data(self, start_height: int, end_height: int, batch_size: int) -> QueryResult | None:
        query = self._queries_map.get(start_height)
        if query is None:
            return None

        if not self._metadata.covers(start_height):
            raise DictionaryQueryError(self.endpoint, f"height {start_height} is not covered by this dictionary")

        query_end = self._query_end(start_height, end_height)

        raw = await self._query(start_height, query_end, batch_size, query)
        return self._finalize(raw, start_height, query_end, batch_size)

    @staticmethod
    def _finalize(raw: RawBatch, start_height: int, query_end: int, batch_size: int) -> QueryResult:
        by_height: dict[int, dict[str, Any] | None] = {}
        for height, entry in sorted(raw.blocks, key=lambda b: b[0]):
            if start_height <= height <= query_end and height not in by_height:
                by_height[height] = entry

        heights = list(by_height)[:batch_size]
        if len(by_height) >= batch_size and heights:
            last_buffered = heights[-1]
        elif raw.scanned_to is not None:
            last_buffered = min(query_end, raw.scanned_to)
        else:
            last_buffered = query_end

        return QueryResult(
            batch_blocks=tuple(heights),
            last_buffered_height=last_buffered,
            entries=tuple(e for h in heights if (e := by_height[h]) is not None),
        )

    async def _post_json(self, payload: dict[str, Any]) -> Any:
        """POST a JSON payload, mapping transport and decoding errors to `DictionaryQueryError`."""
        try:
            r = await self.client.post(self.endpoint, json=payload)
            r.raise_for_status()
            return r.json()
        except httpx.HTTPError as e:
            raise DictionaryQueryError(self.endpoint, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise DictionaryQueryError(self.endpoint, f"invalid JSON response: {e}") from e

    # --- protocol specific -------------------------------------------------

    @abstractmethod
    async def _fetch_metadata(self) -> DictionaryMetadata:
        """Probe the backend; raise `DictionaryError` when it is unusable."""

    @abstractmethod
    def _build_query(self, entries: List[DictionaryQueryEntry]) -> Q:
        """Turn entity filters into this protocol's query predicate."""

    @abstractmethod
    async def _query(self, start_height: int, end_height: int, batch_size: int, query: Q) -> RawBatch:
        """Run one query over the inclusive range."""
