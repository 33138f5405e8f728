"""HTTP API for the trading journal."""

from .app import create_app

__all__ = ["create_app"]
