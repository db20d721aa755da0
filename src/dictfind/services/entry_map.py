from __future__ import annotations

from collections.abc import Sequence

from dictfind.core.models import BlockHeightMap, Datasource, DictionaryQueryEntry


def entries_for(datasources: Sequence[Datasource]) -> list[DictionaryQueryEntry]:
    """Distinct query entries for a set of active datasources.

    Returns [] as soon as one datasource has no filters: it needs every block,
    so a dictionary cannot narrow the range.
    """
    entries: list[DictionaryQueryEntry] = []
    for ds in datasources:
        if not ds.filters:
            return []
        for f in ds.filters:
            entry = DictionaryQueryEntry(entity=f.entity, conditions=f.conditions)
            if entry not in entries:
                entries.append(entry)
    return entries


def build_ds_entry_map(ds_map: BlockHeightMap[Sequence[Datasource]]) -> BlockHeightMap[list[DictionaryQueryEntry]]:
    """Derive the dictionary entry map from the datasource map.

    Segments are also split where a datasource's `end_block` is passed, so a
    finished datasource stops contributing filters from `end_block + 1`.
    """
    boundaries = {h for h, _ in ds_map}
    for _, datasources in ds_map:
        for ds in datasources:
            if ds.end_block is not None:
                boundaries.add(ds.end_block + 1)

    out: dict[int, list[DictionaryQueryEntry]] = {}
    for height in sorted(boundaries):
        active = [ds for ds in ds_map.get(height) or () if ds.covers(height)]
        out[height] = entries_for(active)
    return BlockHeightMap(out)
