"""Dictionary registry: chain identity -> candidate dictionary endpoints."""

from dictfind.registry.resolver import Catalog, RegistryResolver, resolve_dictionary

__all__ = ["Catalog", "RegistryResolver", "resolve_dictionary"]
