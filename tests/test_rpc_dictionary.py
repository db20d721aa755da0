from typing import Any

import httpx
import pytest

from dictfind.core.errors import DictionaryQueryError
from dictfind.core.models import BlockHeightMap, Datasource, DictionaryFilter
from dictfind.dictionaries.factory import inspect_dictionary_version
from dictfind.dictionaries.graphql import GraphQLDictionary
from dictfind.dictionaries.rpc import RpcDictionary, merge_ranges, parse_block_height
from dictfind.services.entry_map import build_ds_entry_map

ENDPOINT = "http://mock-dictionary-v2/rpc"
CAPABILITIES = {
    "availableBlocks": [{"startHeight": 100, "endHeight": 20_000}],
    "genesisHash": "0xgenesis",
    "supportedResponses": ["basic", "complete"],
}
LOGS = DictionaryFilter.of("logs", address="0xabc")


def rpc_handler(filter_result: Any, calls: list[dict[str, Any]]):
    def handle(payload: dict[str, Any], request: httpx.Request) -> Any:
        calls.append(payload)
        if payload["method"] == "subql_filterBlocksCapabilities":
            return {"jsonrpc": "2.0", "id": 1, "result": CAPABILITIES}
        if isinstance(filter_result, httpx.Response):
            return filter_result
        return {"jsonrpc": "2.0", "id": 1, **filter_result}

    return handle


async def make_dictionary(json_client: Any, handler: Any) -> RpcDictionary:
    d = RpcDictionary(ENDPOINT, "0xgenesis", client=json_client(handler))
    await d.init()
    d.update_queries_map(build_ds_entry_map(BlockHeightMap({1: [Datasource("erc20", 1, filters=(LOGS,))]})))
    return d


@pytest.mark.asyncio
async def test_init_reads_available_blocks(json_client: Any) -> None:
    d = await make_dictionary(json_client, rpc_handler({}, []))

    assert d.metadata.start_height == 100
    assert d.metadata.last_processed_height == 20_000
    assert not d.height_validation(99)
    assert d.height_validation(100)
    assert not d.height_validation(20_001)


@pytest.mark.asyncio
async def test_get_data_sends_conditions_and_parses_blocks(json_client: Any) -> None:
    calls: list[dict[str, Any]] = []
    result = {
        "result": {
            "blocks": [{"header": {"number": "0x3e9"}, "logs": []}, {"header": {"number": 1500}}],
            "blockRange": [1000, 2000],
            "genesisHash": "0xgenesis",
        }
    }
    d = await make_dictionary(json_client, rpc_handler(result, calls))

    res = await d.get_data(1000, 11_000, 100)

    start, end, limit, conditions, _ = calls[-1]["params"]
    assert (start, end, limit) == (1000, 11_000, 100)
    assert conditions == {"logs": [{"address": ["0xabc"]}]}
    assert res.batch_blocks == (1001, 1500)
    assert res.last_buffered_height == 2000
    assert len(res.entries) == 2


@pytest.mark.asyncio
async def test_get_data_limits_batch(json_client: Any) -> None:
    blocks = [{"header": {"number": h}} for h in (1003, 1001, 1002)]
    d = await make_dictionary(json_client, rpc_handler({"result": {"blocks": blocks, "blockRange": [1000, 11_000]}}, []))

    res = await d.get_data(1000, 11_000, 2)

    assert res.batch_blocks == (1001, 1002)
    assert res.last_buffered_height == 1002


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "filter_result",
    [
        {"error": {"code": -32000, "message": "boom"}},
        {"result": {"blocks": [{"logs": []}]}},
        httpx.Response(500),
        httpx.Response(200, content=b"not json"),
    ],
)
async def test_get_data_failures_raise(json_client: Any, filter_result: Any) -> None:
    d = await make_dictionary(json_client, rpc_handler(filter_result, []))

    with pytest.raises(DictionaryQueryError):
        await d.get_data(1000, 2000, 10)


def test_parse_block_height():
    assert parse_block_height({"header": {"number": "0x10"}}) == 16
    assert parse_block_height({"height": 7}) == 7
    assert parse_block_height(42) == 42


@pytest.mark.asyncio
async def test_inspect_dictionary_version(json_client: Any) -> None:
    rpc = json_client(rpc_handler({}, []))
    graphql = json_client(lambda p, r: httpx.Response(400, json={"errors": [{"message": "Must provide query"}]}))

    assert await inspect_dictionary_version(ENDPOINT, rpc) is RpcDictionary
    assert await inspect_dictionary_version(ENDPOINT, graphql) is GraphQLDictionary


@pytest.mark.asyncio
async def test_gapped_available_blocks(json_client: Any) -> None:
    calls: list[dict[str, Any]] = []
    gapped = {**CAPABILITIES, "availableBlocks": [{"startHeight": 500, "endHeight": 1000}, {"startHeight": 1, "endHeight": 100}]}

    def handle(payload: dict[str, Any], request: httpx.Request) -> Any:
        calls.append(payload)
        if payload["method"] == "subql_filterBlocksCapabilities":
            return {"jsonrpc": "2.0", "id": 1, "result": gapped}
        return {"jsonrpc": "2.0", "id": 1, "result": {"blocks": [], "blockRange": payload["params"][:2]}}

    d = await make_dictionary(json_client, handle)

    assert d.metadata.available_blocks == ((1, 100), (500, 1000))
    assert d.height_validation(50)
    assert not d.height_validation(200)
    assert d.height_validation(600)

    res = await d.get_data(50, 1000, 10)

    assert calls[-1]["params"][:2] == [50, 100]
    assert res.last_buffered_height == 100
    with pytest.raises(DictionaryQueryError):
        await d.get_data(200, 1000, 10)


def test_merge_ranges_keeps_gaps():
    assert merge_ranges([(500, 1000), (1, 100), (101, 150), (90, 120)]) == [(1, 150), (500, 1000)]
