"""API route modules."""

from . import health, lanes

__all__ = ["health", "lanes"]
