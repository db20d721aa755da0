from dictfind.core.models import (
    BlockHeightMap,
    Datasource,
    DictionaryFilter,
    DictionaryMetadata,
    DictionaryQueryEntry,
)
from dictfind.services.entry_map import build_ds_entry_map, entries_for

LOGS = DictionaryFilter.of("evmLogs", address="0xabc", topics0="0xddf2")
TXS = DictionaryFilter.of("evmTransactions", to="0xdef")


def test_block_height_map_lookup():
    m = BlockHeightMap({100: "b", 1: "a", 500: "c"})

    assert m.get(0) is None
    assert m.get(1) == "a"
    assert m.get(99) == "a"
    assert m.get(100) == "b"
    assert m.get(10_000) == "c"
    assert list(m) == [(1, "a"), (100, "b"), (500, "c")]


def test_block_height_map_details_and_changes():
    m = BlockHeightMap({1: "a", 100: "b"})

    assert m.get_details(50) == (1, 99, "a")
    assert m.get_details(100) == (100, None, "b")
    assert m.get_details(0) is None
    assert m.next_change_after(1) == 100
    assert m.next_change_after(100) is None
    assert m.map(str.upper).get(150) == "B"


def test_metadata_chain_match():
    assert DictionaryMetadata().matches_chain("1")
    assert DictionaryMetadata(chain="1", genesis_hash="0xD4E5").matches_chain("0xd4e5")
    assert DictionaryMetadata(chain="1").matches_chain("1")
    assert not DictionaryMetadata(chain="137").matches_chain("1")


def test_filter_conditions_are_ordered():
    assert LOGS.conditions == (("address", "0xabc"), ("topics0", "0xddf2"))


def test_entries_for_deduplicates():
    a = Datasource("a", 1, filters=(LOGS,))
    b = Datasource("b", 1, filters=(LOGS, TXS))

    assert entries_for([a, b]) == [
        DictionaryQueryEntry("evmLogs", LOGS.conditions),
        DictionaryQueryEntry("evmTransactions", TXS.conditions),
    ]


def test_unfiltered_datasource_disables_filtering():
    blocks = Datasource("blocks", 1)

    assert entries_for([Datasource("a", 1, filters=(LOGS,)), blocks]) == []


def test_entry_map_splits_on_datasource_end():
    a = Datasource("a", 1, end_block=199, filters=(LOGS,))
    b = Datasource("b", 100, filters=(TXS,))
    ds_map = BlockHeightMap({1: [a], 100: [a, b]})

    entry_map = build_ds_entry_map(ds_map)

    assert [h for h, _ in entry_map] == [1, 100, 200]
    assert [e.entity for e in entry_map.get(50)] == ["evmLogs"]
    assert [e.entity for e in entry_map.get(150)] == ["evmLogs", "evmTransactions"]
    assert [e.entity for e in entry_map.get(250)] == ["evmTransactions"]


def test_metadata_coverage_with_gaps():
    md = DictionaryMetadata(last_processed_height=1000, start_height=1, available_blocks=((1, 100), (500, 1000)))

    assert md.covered_until(50) == 100
    assert md.covered_until(200) is None
    assert md.covered_until(700) == 1000
    assert not md.covers(1001)
    assert DictionaryMetadata(last_processed_height=10).covered_until(5) == 10
    assert not DictionaryMetadata().covers(1)
