"""JSON-RPC dictionary adapter (second protocol generation).

This module provides:
- `RpcDictionary`: a dictionary speaking `subql_filterBlocksCapabilities` /
  `subql_filterBlocks`
- `parse_block_height`: best-effort height extraction from a returned block

It returns raw block payloads alongside their heights so callers can skip
re-fetching them from the chain.
"""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ValidationError

from dictfind.constants import RPC_CAPABILITIES_METHOD, RPC_FILTER_BLOCKS_METHOD
from dictfind.core.errors import DictionaryQueryError, DictionaryVersionError
from dictfind.core.models import DictionaryMetadata, DictionaryQueryEntry
from dictfind.dictionaries.base import HttpDictionary, RawBatch

# entity -> list of condition groups (field -> accepted values)
RpcConditions = dict[str, List[dict[str, List[str]]]]

DEFAULT_FIELD_SELECTOR: dict[str, Any] = {"blockHeader": True, "logs": {"transaction": True}, "transactions": {"log": True}}


class BlockRange(BaseModel):
    startHeight: int
    endHeight: int


class Capabilities(BaseModel):
    availableBlocks: List[BlockRange]
    genesisHash: str | None = None
    chainId: str | None = None
    supportedResponses: List[str] = []

    def to_metadata(self) -> DictionaryMetadata:
        ranges = merge_ranges([(b.startHeight, b.endHeight) for b in self.availableBlocks])
        if not ranges:
            return DictionaryMetadata(chain=self.chainId, genesis_hash=self.genesisHash)
        return DictionaryMetadata(
            last_processed_height=ranges[-1][1],
            start_height=ranges[0][0],
            chain=self.chainId,
            genesis_hash=self.genesisHash,
            available_blocks=tuple(ranges),
        )


def merge_ranges(ranges: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Merge overlapping/adjacent inclusive ranges; gaps between them are kept."""
    out: list[list[int]] = []
    for s, e in sorted(r for r in ranges if r[0] <= r[1]):
        if out and s <= out[-1][1] + 1:
            out[-1][1] = max(out[-1][1], e)
        else:
            out.append([s, e])
    return [(s, e) for s, e in out]


def _to_int(x: Any) -> int:
    if isinstance(x, str) and x.startswith("0x"):
        return int(x, 16)
    return int(x)


def parse_block_height(block: Any) -> int:
    """Return the height of a block payload (`header.number`, `number` or `height`)."""
    if isinstance(block, (int, str)):
        return _to_int(block)
    header = block.get("header") or block.get("blockHeader") or {}
    for source in (header, block):
        for key in ("number", "height", "blockHeight"):
            if key in source and source[key] is not None:
                return _to_int(source[key])
    raise KeyError("block payload has no height")


class RpcDictionary(HttpDictionary[RpcConditions]):
    """Dictionary served over JSON-RPC."""

    kind = "rpc"

    def __init__(self, *args: Any, field_selector: dict[str, Any] | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.field_selector = field_selector or DEFAULT_FIELD_SELECTOR

    async def _call(self, method: str, params: list[Any]) -> Any:
        body = await self._post_json({"jsonrpc": "2.0", "id": 1, "method": method, "params": params})
        if not isinstance(body, dict):
            raise DictionaryQueryError(self.endpoint, "JSON-RPC response is not an object")
        if "error" in body:
            e = body["error"]
            msg = f"{e.get('code')} {e.get('message')}" if isinstance(e, dict) else str(e)
            raise DictionaryQueryError(self.endpoint, f"RPC error: {msg}")
        if "result" not in body:
            raise DictionaryQueryError(self.endpoint, "JSON-RPC response has no result")
        return body["result"]

    async def _fetch_metadata(self) -> DictionaryMetadata:
        result = await self._call(RPC_CAPABILITIES_METHOD, [])
        try:
            return Capabilities.model_validate(result).to_metadata()
        except ValidationError as e:
            raise DictionaryVersionError(f"{self.endpoint}: unexpected capabilities: {e}") from e

    def _build_query(self, entries: List[DictionaryQueryEntry]) -> RpcConditions:
        conditions: RpcConditions = {}
        for entry in entries:
            groups = conditions.setdefault(entry.entity, [])
            group = {k: [v] for k, v in entry.conditions}
            if group not in groups:
                groups.append(group)
        return conditions

    async def _query(self, start_height: int, end_height: int, batch_size: int, query: RpcConditions) -> RawBatch:
        result = await self._call(
            RPC_FILTER_BLOCKS_METHOD,
            [start_height, end_height, batch_size, query, self.field_selector],
        )
        try:
            blocks = [(parse_block_height(b), b if isinstance(b, dict) else None) for b in result["blocks"]]
            scanned_to = _to_int(result["blockRange"][1]) if result.get("blockRange") else None
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise DictionaryQueryError(self.endpoint, f"malformed filterBlocks payload: {e!r}") from e
        return RawBatch(blocks=blocks, scanned_to=scanned_to)
