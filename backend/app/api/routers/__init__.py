"""Router exports for FastAPI composition."""

from . import entries, health, insights

__all__ = ["entries", "health", "insights"]
