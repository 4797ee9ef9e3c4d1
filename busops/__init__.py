"""Bus-operations dashboard backend."""

__version__ = "1.0.0"
