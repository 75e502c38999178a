"""Explorer engine context: wires the components and drives the timer."""

from .node import ExplorerNode

__all__ = ["ExplorerNode"]
