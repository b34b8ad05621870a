"""Presentation bridge -- HTTP commands and WebSocket event stream."""

from coinwatch.server.app import create_app

__all__ = ["create_app"]
