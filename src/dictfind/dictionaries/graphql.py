"""GraphQL dictionary adapter (first protocol generation).

Metadata comes from the `_metadata` entity; matched heights come from one
entity query per filtered entity, merged and finalised by `HttpDictionary`.
Every data query also selects `_metadata` so freshness is refreshed for free.
"""

from __future__ import annotations

import json
from typing import Any, List

from pydantic import BaseModel, ValidationError

from dictfind.core.errors import DictionaryQueryError, DictionaryVersionError
from dictfind.core.models import DictionaryMetadata, DictionaryQueryEntry
from dictfind.dictionaries.base import HttpDictionary, RawBatch

# entity name -> list of OR-ed condition groups (field -> value)
GraphQLQuery = dict[str, List[dict[str, str]]]

METADATA_FIELDS = "lastProcessedHeight startHeight genesisHash chain"


class GraphQLMetadata(BaseModel):
    lastProcessedHeight: int
    startHeight: int | None = None
    genesisHash: str | None = None
    chain: str | None = None

    def to_metadata(self) -> DictionaryMetadata:
        return DictionaryMetadata(
            last_processed_height=self.lastProcessedHeight,
            start_height=self.startHeight or 1,
            chain=self.chain,
            genesis_hash=self.genesisHash,
        )


def _gql_value(value: str) -> str:
    return json.dumps(str(value))


def build_entity_filter(conditions: List[dict[str, str]]) -> str:
    """Render `or: [{field: {equalTo: "v"}, ...}, ...]`, or "" when unfiltered."""
    groups = [c for c in conditions if c]
    if len(groups) < len(conditions) or not groups:
        # an unconditional entry already matches every row of the entity
        return ""
    rendered = [
        "{" + ", ".join(f"{k}: {{equalTo: {_gql_value(v)}}}" for k, v in sorted(g.items())) + "}"
        for g in groups
    ]
    return f", or: [{', '.join(rendered)}]"


def build_data_query(query: GraphQLQuery, start_height: int, end_height: int, batch_size: int) -> str:
    """Build one GraphQL document selecting every entity plus `_metadata`."""
    parts = []
    for i, (entity, conditions) in enumerate(sorted(query.items())):
        height_filter = (
            f"blockHeight: {{greaterThanOrEqualTo: {_gql_value(str(start_height))}, "
            f"lessThanOrEqualTo: {_gql_value(str(end_height))}}}"
        )
        parts.append(
            f"e{i}: {entity}(filter: {{{height_filter}{build_entity_filter(conditions)}}}, "
            f"orderBy: BLOCK_HEIGHT_ASC, first: {batch_size}, distinct: [BLOCK_HEIGHT]) "
            "{ nodes { blockHeight } }"
        )
    parts.append(f"_metadata {{ {METADATA_FIELDS} }}")
    return "query { " + " ".join(parts) + " }"


class GraphQLDictionary(HttpDictionary[GraphQLQuery]):
    """Dictionary served by a GraphQL index."""

    kind = "graphql"

    async def _graphql(self, document: str) -> dict[str, Any]:
        body = await self._post_json({"query": document})
        if not isinstance(body, dict):
            raise DictionaryQueryError(self.endpoint, "GraphQL response is not an object")
        if body.get("errors"):
            msg = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in body["errors"])
            raise DictionaryQueryError(self.endpoint, f"GraphQL error: {msg}")
        data = body.get("data")
        if not isinstance(data, dict):
            raise DictionaryQueryError(self.endpoint, "GraphQL response has no data")
        return data

    def _parse_metadata(self, raw: Any) -> DictionaryMetadata:
        try:
            return GraphQLMetadata.model_validate(raw).to_metadata()
        except ValidationError as e:
            raise DictionaryVersionError(f"{self.endpoint}: unexpected _metadata: {e}") from e

    async def _fetch_metadata(self) -> DictionaryMetadata:
        data = await self._graphql(f"query {{ _metadata {{ {METADATA_FIELDS} }} }}")
        return self._parse_metadata(data.get("_metadata"))

    def _build_query(self, entries: List[DictionaryQueryEntry]) -> GraphQLQuery:
        query: GraphQLQuery = {}
        for entry in entries:
            groups = query.setdefault(entry.entity, [])
            group = dict(entry.conditions)
            if group not in groups:
                groups.append(group)
        return query

    async def _query(self, start_height: int, end_height: int, batch_size: int, query: GraphQLQuery) -> RawBatch:
        data = await self._graphql(build_data_query(query, start_height, end_height, batch_size))

        blocks: list[tuple[int, dict[str, Any] | None]] = []
        scanned_to: int | None = None
        try:
            for i in range(len(query)):
                nodes = data[f"e{i}"]["nodes"]
                heights = [int(n["blockHeight"]) for n in nodes]
                blocks.extend((h, None) for h in heights)
                # a full page means this entity may have more matches past its last height
                if len(heights) >= batch_size and heights:
                    scanned_to = heights[-1] if scanned_to is None else min(scanned_to, heights[-1])
        except (KeyError, TypeError, ValueError) as e:
            raise DictionaryQueryError(self.endpoint, f"malformed GraphQL payload: {e!r}") from e

        if data.get("_metadata") is not None:
            try:
                metadata = GraphQLMetadata.model_validate(data["_metadata"]).to_metadata()
            except ValidationError as e:
                raise DictionaryQueryError(self.endpoint, f"malformed _metadata: {e}") from e
            if not self._accept_metadata(metadata):
                raise DictionaryQueryError(self.endpoint, f"now reports chain {metadata.genesis_hash or metadata.chain}")

        return RawBatch(blocks=blocks, scanned_to=scanned_to)
