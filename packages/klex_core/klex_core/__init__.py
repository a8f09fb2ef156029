"""klex_core -- image processing as a directed acyclic graph of layers."""

__version__ = "0.1.0"
