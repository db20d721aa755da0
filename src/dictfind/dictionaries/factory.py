"""Build dictionary instances from endpoint URLs.

The protocol generation is not part of the configuration: each endpoint is
probed with the JSON-RPC capabilities method and falls back to GraphQL when
that probe is not answered.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

import httpx

from dictfind.constants import DEFAULT_MAX_CONNECTIONS, DEFAULT_TIMEOUT_S, RPC_CAPABILITIES_METHOD
from dictfind.core.interfaces import IDictionary
from dictfind.dictionaries.base import HttpDictionary, make_client
from dictfind.dictionaries.graphql import GraphQLDictionary
from dictfind.dictionaries.rpc import RpcDictionary

logger = logging.getLogger(__name__)


async def inspect_dictionary_version(endpoint: str, client: httpx.AsyncClient) -> type[HttpDictionary]:
    """Return the adapter class able to talk to `endpoint`."""
    payload = {"jsonrpc": "2.0", "id": 1, "method": RPC_CAPABILITIES_METHOD, "params": []}
    try:
        r = await client.post(endpoint, json=payload)
        r.raise_for_status()
        body = r.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.debug("Dictionary %s did not answer %s (%s), assuming GraphQL", endpoint, RPC_CAPABILITIES_METHOD, e)
        return GraphQLDictionary
    if isinstance(body, dict) and isinstance(body.get("result"), dict):
        return RpcDictionary
    return GraphQLDictionary


async def create_dictionary(
    endpoint: str,
    chain_id: str | int,
    *,
    timeout_s: int = DEFAULT_TIMEOUT_S,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
) -> IDictionary:
    """Probe `endpoint` and build the matching dictionary; `init()` is left to the caller."""
    client = make_client(timeout_s, max_connections)
    cls = await inspect_dictionary_version(endpoint, client)
    logger.debug("Dictionary %s uses the %s protocol", endpoint, cls.kind)
    return cls(endpoint, chain_id, timeout_s=timeout_s, client=client)


async def create_dictionaries(
    endpoints: Sequence[str],
    chain_id: str | int,
    *,
    timeout_s: int = DEFAULT_TIMEOUT_S,
    max_connections: int = DEFAULT_MAX_CONNECTIONS,
) -> list[IDictionary]:
    """Build one dictionary per endpoint, keeping endpoint order."""
    return list(
        await asyncio.gather(
            *(
                create_dictionary(e, chain_id, timeout_s=timeout_s, max_connections=max_connections)
                for e in endpoints
            )
        )
    )
