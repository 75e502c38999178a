"""Services of the explorer engine: data sources, state, distribution and status."""

from .backend import ExplorerBackend
from .node import ExplorerNode

__all__ = [
    "ExplorerBackend",
    "ExplorerNode",
]
