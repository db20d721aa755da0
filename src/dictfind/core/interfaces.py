from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from dictfind.core.models import BlockHeightMap, DictionaryMetadata, DictionaryQueryEntry, QueryResult


# ---------------------------------------------------------------------------
# IDictionary
# ---------------------------------------------------------------------------

@runtime_checkable
class IDictionary(Protocol):
    """
    One dictionary backend behind a single endpoint.

    Domain expectations:
    - `endpoint` and `chain_id` never change after construction.
    - `height_validation` is a pure predicate over the current metadata.
    - `get_data` raises on network / timeout / protocol problems; that is the
      only signal the dictionary service reacts to.
    - The service never asks which protocol generation is behind an instance.
    """

    endpoint: str
    chain_id: str

    @property
    def metadata(self) -> DictionaryMetadata:
        """Latest metadata fetched from the backend."""
        ...

    async def init(self) -> None:
        """
        Probe the backend and load its metadata.

        Safe to call more than once; only the first call does any I/O.
        Failure leaves the instance in the pool with empty metadata, so
        `height_validation` answers False for every height.
        """
        ...

    def height_validation(self, height: int) -> bool:
        """Return True if the backend index covers `height`."""
        ...

    async def get_data(self, start_height: int, end_height: int, batch_size: int) -> QueryResult | None:
        """
        Return matched heights in [start_height, end_height], at most `batch_size`.

        Returns None when no datasource filter applies at `start_height`.
        """
        ...

    def update_queries_map(self, ds_entry_map: BlockHeightMap[List[DictionaryQueryEntry]]) -> None:
        """Rebuild backend-specific query predicates from the entry map."""
        ...

    async def aclose(self) -> None:
        """Release the underlying connection."""
        ...


# ---------------------------------------------------------------------------
# IRegistryResolver
# ---------------------------------------------------------------------------

@runtime_checkable
class IRegistryResolver(Protocol):
    """
    Turns a chain identity into candidate dictionary endpoints.

    Domain expectations:
    - Never raises; an unreachable or malformed catalog yields [].
    - Returned URLs keep catalog order (earlier entries preferred).
    """

    async def resolve(self, network_family: str, chain_id: str | int, registry_url: str) -> List[str]:
        ...
