"""Keep one local data snapshot in sync with its remote copy."""

__version__ = "0.1.0"
