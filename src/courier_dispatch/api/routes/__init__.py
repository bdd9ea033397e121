"""API route modules."""

from . import health, workers

__all__ = ["health", "workers"]
