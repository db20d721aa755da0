"""Core data models shared by dictionaries and the dictionary service.

This module defines:
- `DictionaryMetadata`: freshness metadata reported by one dictionary backend.
- `QueryResult`: one batch of matched heights returned by `get_data`.
- `Datasource` / `DictionaryFilter`: the indexer's datasource configuration,
   reduced to what a dictionary can filter on.
- `DictionaryQueryEntry`: one entity filter derived from datasources.
- `BlockHeightMap`: immutable "value from height H onwards" mapping.

Design notes
------------
- Every model is frozen; a new map is built whenever datasources change.
- Heights are inclusive on both ends.
"""

from __future__ import annotations

import bisect
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


# === Dictionary metadata ===


@dataclass(slots=True, frozen=True)
class DictionaryMetadata:
    """Freshness metadata of a dictionary backend."""

    last_processed_height: int | None = None
    start_height: int = 1
    chain: str | None = None  # chain id reported by the backend
    genesis_hash: str | None = None
    # merged inclusive ranges actually indexed; empty means [start_height, last_processed_height]
    available_blocks: tuple[tuple[int, int], ...] = ()

    def covers(self, height: int) -> bool:
        """True if the backend index holds `height`."""
        return self.covered_until(height) is not None

    def covered_until(self, height: int) -> int | None:
        """Last height of the indexed range containing `height`, or None if `height` is not indexed."""
        lph = self.last_processed_height
        if lph is None or not self.start_height <= height <= lph:
            return None
        if not self.available_blocks:
            return lph
        for start, end in self.available_blocks:
            if start <= height <= end:
                return min(end, lph)
        return None

    def matches_chain(self, chain_id: str) -> bool:
        """True unless the backend reports a chain identity other than `chain_id`."""
        reported = {x.lower() for x in (self.chain, self.genesis_hash) if x}
        return not reported or chain_id.lower() in reported


EMPTY_METADATA = DictionaryMetadata()


# === Query result ===


@dataclass(slots=True, frozen=True)
class QueryResult:
    """Matched heights for one `get_data` call.

    `last_buffered_height` is the height up to which the batch is complete:
    the caller may skip every height in [start, last_buffered_height] that is
    not listed in `batch_blocks`.
    """

    batch_blocks: tuple[int, ...]
    last_buffered_height: int
    entries: tuple[dict[str, Any], ...] = ()

    def __len__(self) -> int:
        return len(self.batch_blocks)


# === Datasources ===


@dataclass(slots=True, frozen=True)
class DictionaryFilter:
    """Equality filter on one dictionary entity, e.g. `evmLogs` with `address=0x..`."""

    entity: str
    conditions: tuple[tuple[str, str], ...] = ()

    @classmethod
    def of(cls, entity: str, **conditions: str) -> DictionaryFilter:
        return cls(entity=entity, conditions=tuple(sorted(conditions.items())))


@dataclass(slots=True, frozen=True)
class Datasource:
    """A datasource as seen by the dictionary layer.

    A datasource without filters needs every block (e.g. a block handler), so
    no dictionary can narrow the range while it is active.
    """

    name: str
    start_block: int
    end_block: int | None = None
    filters: tuple[DictionaryFilter, ...] = ()

    def covers(self, height: int) -> bool:
        return self.start_block <= height and (self.end_block is None or height <= self.end_block)


@dataclass(slots=True, frozen=True)
class DictionaryQueryEntry:
    """One entity filter a backend adapter turns into a query predicate."""

    entity: str
    conditions: tuple[tuple[str, str], ...] = field(default_factory=tuple)


# === Block height map ===


class BlockHeightMap(Generic[T]):
    """Immutable mapping where each value applies from its start height onwards.

    >>> m = BlockHeightMap({1: "a", 100: "b"})
    >>> m.get(50), m.get(100)
    ('a', 'b')
    """

    __slots__ = ("_heights", "_values")

    def __init__(self, values: Mapping[int, T]) -> None:
        self._heights: tuple[int, ...] = tuple(sorted(values))
        self._values: tuple[T, ...] = tuple(values[h] for h in self._heights)

    def __len__(self) -> int:
        return len(self._heights)

    def __iter__(self) -> Iterator[tuple[int, T]]:
        return iter(zip(self._heights, self._values))

    def __repr__(self) -> str:
        return f"BlockHeightMap({dict(self)!r})"

    def _index(self, height: int) -> int:
        return bisect.bisect_right(self._heights, height) - 1

    def get(self, height: int, default: T | None = None) -> T | None:
        """Return the value in effect at `height`."""
        i = self._index(height)
        if i < 0:
            return default
        return self._values[i]

    def get_details(self, height: int) -> tuple[int, int | None, T] | None:
        """Return (segment start, segment end or None if open, value) at `height`."""
        i = self._index(height)
        if i < 0:
            return None
        end = self._heights[i + 1] - 1 if i + 1 < len(self._heights) else None
        return self._heights[i], end, self._values[i]

    def next_change_after(self, height: int) -> int | None:
        """First start height strictly greater than `height`, if any."""
        i = bisect.bisect_right(self._heights, height)
        return self._heights[i] if i < len(self._heights) else None

    def map(self, fn: Callable[[T], U]) -> BlockHeightMap[U]:
        return BlockHeightMap({h: fn(v) for h, v in self})
