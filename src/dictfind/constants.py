from __future__ import annotations

from enum import Enum

# Public dictionary catalog maintained alongside the project templates
DEFAULT_REGISTRY_URL = "https://github.com/subquery/templates/raw/main/dist/dictionary.json"

DEFAULT_TIMEOUT_S = 10
DEFAULT_REGISTRY_TIMEOUT_S = 20
DEFAULT_MAX_CONNECTIONS = 16

# JSON-RPC methods served by RPC-style dictionaries
RPC_CAPABILITIES_METHOD = "subql_filterBlocksCapabilities"
RPC_FILTER_BLOCKS_METHOD = "subql_filterBlocks"


class NetworkFamily(str, Enum):
    """Chain families known to the dictionary registry."""

    ETHEREUM = "ethereum"
    SUBSTRATE = "substrate"
    COSMOS = "cosmos"
    ALGORAND = "algorand"
    NEAR = "near"
    STELLAR = "stellar"
    CONCORDIUM = "concordium"
    STARKNET = "starknet"
    SOLANA = "solana"
