"""Dictionary registry lookup.

The registry is a JSON catalog keyed by network family and chain id:

    {"ethereum": {"1": ["https://dict-a/...", "https://dict-b/..."]},
     "substrate": {"0x91b1...": [{"url": "https://dict-c/..."}]}}

Entries are plain URLs or objects carrying a `url`. Catalog order is a
priority order. Lookups never raise: a missing or broken catalog simply
means no dictionary for that chain.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, List

import httpx
from pydantic import BaseModel, RootModel, TypeAdapter, ValidationError

from dictfind.constants import DEFAULT_REGISTRY_TIMEOUT_S

logger = logging.getLogger(__name__)


class CatalogEntry(BaseModel):
    url: str


_ENTRIES = TypeAdapter(List[str | CatalogEntry])


class Catalog(RootModel[dict[str, Any]]):
    """Registry document; only the node being looked up is validated."""

    def endpoints(self, network_family: str, chain_id: str) -> list[str]:
        family = next((v for k, v in self.root.items() if k.lower() == network_family.lower()), None)
        if not isinstance(family, dict) or family.get(chain_id) is None:
            return []
        urls: list[str] = []
        for entry in _ENTRIES.validate_python(family[chain_id]):
            url = entry.url if isinstance(entry, CatalogEntry) else entry
            if url and url not in urls:
                urls.append(url)
        return urls


def _family_key(network_family: str | Enum) -> str:
    return network_family.value if isinstance(network_family, Enum) else str(network_family)


async def resolve_dictionary(
    network_family: str | Enum,
    chain_id: str | int,
    registry_url: str,
    *,
    client: httpx.AsyncClient | None = None,
    timeout_s: int = DEFAULT_REGISTRY_TIMEOUT_S,
) -> list[str]:
    """Return dictionary endpoints registered for (network_family, chain_id), best first.

    Parameters
    ----------
    network_family : str | NetworkFamily
        Chain family key in the catalog (case-insensitive).
    chain_id : str | int
        Chain id or genesis hash.
    registry_url : str
        Catalog URL.
    client : httpx.AsyncClient | None
        Client to reuse; a short-lived one is created otherwise.
    """
    family = _family_key(network_family)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout_s, follow_redirects=True) as own_client:
                r = await own_client.get(registry_url)
        else:
            r = await client.get(registry_url, follow_redirects=True)
        r.raise_for_status()
        catalog = Catalog.model_validate_json(r.content)
        urls = catalog.endpoints(family, str(chain_id))
    except httpx.HTTPError as e:
        logger.warning("Failed to fetch dictionary registry %s: %s", registry_url, e)
        return []
    except ValidationError as e:
        logger.warning("Dictionary registry %s is malformed: %s", registry_url, e.errors()[:1])
        return []

    if not urls:
        logger.info("No dictionary registered for %s chain %s", family, chain_id)
    return urls


class RegistryResolver:
    """`IRegistryResolver` backed by `resolve_dictionary`, optionally sharing a client."""

    def __init__(self, client: httpx.AsyncClient | None = None, *, timeout_s: int = DEFAULT_REGISTRY_TIMEOUT_S) -> None:
        self._client = client
        self._timeout_s = timeout_s

    async def resolve(self, network_family: str, chain_id: str | int, registry_url: str) -> List[str]:
        return await resolve_dictionary(
            network_family,
            chain_id,
            registry_url,
            client=self._client,
            timeout_s=self._timeout_s,
        )
