"""Document catalog client: reactive store with realtime ingestion."""

__all__ = ["__version__"]

__version__ = "0.1.0"
