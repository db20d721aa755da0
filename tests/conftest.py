from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from dictfind.core.models import DictionaryMetadata, QueryResult


class FakeDictionary:
    """In-memory `IDictionary` whose calls are recorded by mocks."""

    def __init__(
        self,
        endpoint: str,
        last_processed_height: int | None = None,
        *,
        start_height: int = 1,
        fail: bool = False,
        result: QueryResult | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.chain_id = "mockChainId"
        self._metadata = DictionaryMetadata(last_processed_height=last_processed_height, start_height=start_height)
        if fail:
            self.get_data = AsyncMock(side_effect=RuntimeError(f"{endpoint} mock fetch failed"))
        else:
            self.get_data = AsyncMock(
                return_value=result or QueryResult(batch_blocks=(1001, 1002), last_buffered_height=1100)
            )
        self.init = AsyncMock()
        self.aclose = AsyncMock()
        self.update_queries_map = MagicMock()

    @property
    def metadata(self) -> DictionaryMetadata:
        return self._metadata

    @metadata.setter
    def metadata(self, value: DictionaryMetadata) -> None:
        self._metadata = value

    def height_validation(self, height: int) -> bool:
        md = self._metadata
        return md.last_processed_height is not None and md.start_height <= height <= md.last_processed_height


@pytest.fixture
def make_dictionary() -> Callable[..., FakeDictionary]:
    return FakeDictionary


@pytest.fixture
def mock_resolver():
    resolver = AsyncMock()
    resolver.resolve = AsyncMock(return_value=[])
    return resolver


def _json_client(handler: Callable[[dict[str, Any], httpx.Request], Any]) -> httpx.AsyncClient:
    """AsyncClient whose POST bodies are decoded and answered by `handler`.

    `handler` returns a JSON-able body or an `httpx.Response`.
    """

    def respond(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content) if request.content else {}
        out = handler(payload, request)
        if isinstance(out, httpx.Response):
            return out
        return httpx.Response(200, json=out)

    return httpx.AsyncClient(transport=httpx.MockTransport(respond))


@pytest.fixture
def json_client() -> Callable[..., httpx.AsyncClient]:
    return _json_client
