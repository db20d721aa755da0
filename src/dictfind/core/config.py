from __future__ import annotations

from dataclasses import dataclass

from dictfind.constants import DEFAULT_MAX_CONNECTIONS, DEFAULT_REGISTRY_URL, DEFAULT_TIMEOUT_S, NetworkFamily


@dataclass(frozen=True)
class DictionaryConfig:
    """Configuration for building the dictionary pool."""

    chain_id: str
    network_family: NetworkFamily | str = NetworkFamily.ETHEREUM
    endpoints: tuple[str, ...] = ()  # explicit endpoints, tried before registry ones
    registry_url: str = DEFAULT_REGISTRY_URL
    use_registry: bool = True
    timeout_s: int = DEFAULT_TIMEOUT_S  # per query
    max_connections: int = DEFAULT_MAX_CONNECTIONS
