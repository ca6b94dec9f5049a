"""Flow canvas: graph model, validation, persistence and catalog."""

from .graph import FlowGraph
from .loader import LoadResult, dump_flow, dumps_flow, load_flow
from .manager import FlowCatalog
from .validator import FlowValidator

__all__ = [
    "FlowGraph",
    "FlowValidator",
    "FlowCatalog",
    "LoadResult",
    "load_flow",
    "dump_flow",
    "dumps_flow",
]
