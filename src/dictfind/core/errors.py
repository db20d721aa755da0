from __future__ import annotations


class DictionaryError(Exception):
    """Base class for dictionary layer errors."""


class DictionaryQueryError(DictionaryError):
    """A dictionary query failed (network, timeout, protocol or malformed payload)."""

    def __init__(self, endpoint: str, message: str) -> None:
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint


class DictionaryVersionError(DictionaryError):
    """The backend at an endpoint does not speak a supported dictionary protocol."""


class DictionaryConfigError(DictionaryError):
    """Dictionary configuration cannot produce any dictionary."""
