"""Lane pairs: deterministic alternate city pairs for freight lane postings."""

__version__ = "0.1.0"
