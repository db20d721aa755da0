from dictfind.services.dictionary_service import DictionaryService
from dictfind.services.entry_map import build_ds_entry_map

__all__ = ["DictionaryService", "build_ds_entry_map"]
