"""FastAPI application factory for the presentation bridge."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from coinwatch.server.routes import api, ws
from coinwatch.server.routes.ws import PriceHub


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        FastAPI application with a WebSocket hub on ``app.state.hub`` and the
        command routes registered. The scheduler, cache and publisher are
        attached to ``app.state`` by the caller.
    """
    app = FastAPI(
        title="Coinwatch",
        lifespan=lifespan,
    )

    app.state.hub = PriceHub()

    app.include_router(api.router, prefix="/api")
    app.include_router(ws.router)

    return app
