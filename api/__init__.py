"""HTTP boundary for the query engine."""

from .server import create_app

__all__ = ["create_app"]
