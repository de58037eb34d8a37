"""dynreducer: filtered, sorted, change-detected views over lists and dicts."""

from importlib.metadata import version as _version

__version__ = _version("dynreducer")

from dynreducer._utils import HostHandle
from dynreducer.indexer import Indexer, IndexerAPI
from dynreducer.filters import Filters, FilterEntry
from dynreducer.sort import Sort
from dynreducer.derived import DerivedAPI, DerivedManager
from dynreducer.list_reducer import DynListReducer, DerivedListReducer, ListIndexer
from dynreducer.map_reducer import DynMapReducer, DerivedMapReducer, MapIndexer
from dynreducer.dynamic import DynamicFilter, DynamicSort
# textual NOT auto-imported; opt-in only

__all__ = [
    "DynListReducer",
    "DerivedListReducer",
    "DynMapReducer",
    "DerivedMapReducer",
    "DynamicFilter",
    "DynamicSort",
    "Filters",
    "FilterEntry",
    "Sort",
    "DerivedAPI",
    "DerivedManager",
    "Indexer",
    "IndexerAPI",
    "ListIndexer",
    "MapIndexer",
    "HostHandle",
]
