"""Dictionary adapters for both protocol generations.

This package provides:
- `GraphQLDictionary` and `RpcDictionary` adapters
- `create_dictionaries` to probe endpoints and build the matching adapter
"""

from dictfind.dictionaries.base import HttpDictionary
from dictfind.dictionaries.factory import create_dictionaries, create_dictionary, inspect_dictionary_version
from dictfind.dictionaries.graphql import GraphQLDictionary
from dictfind.dictionaries.rpc import RpcDictionary

__all__ = [
    "HttpDictionary",
    "GraphQLDictionary",
    "RpcDictionary",
    "create_dictionaries",
    "create_dictionary",
    "inspect_dictionary_version",
]
