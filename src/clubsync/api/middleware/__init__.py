"""API middleware package."""

from src.clubsync.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
