"""Entry point for the coinwatch price service.

Wires all components together, optionally embeds the FastAPI bridge, and
starts the polling scheduler. When the bridge is enabled (default), polling
and the HTTP/WebSocket server share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. MarketDataProvider (ccxt-backed)
4. PriceCache (last-known-good snapshot and series)
5. RateLimitTracker
6. ViewModelPublisher
7. PollingScheduler
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from coinwatch.config import AppSettings
from coinwatch.logging import get_logger, setup_logging
from coinwatch.market_data.ccxt_provider import CcxtMarketDataProvider
from coinwatch.market_data.price_cache import PriceCache
from coinwatch.market_data.publisher import ViewModelPublisher
from coinwatch.market_data.rate_limit import RateLimitTracker
from coinwatch.market_data.scheduler import PollingScheduler


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Note: Does NOT call provider.connect() -- that happens in the lifespan
    (bridge mode) or run() (headless mode).
    """
    provider = CcxtMarketDataProvider(settings.provider)
    cache = PriceCache()
    rate_limit = RateLimitTracker()
    publisher = ViewModelPublisher()
    scheduler = PollingScheduler(
        provider=provider,
        cache=cache,
        rate_limit=rate_limit,
        publisher=publisher,
        settings=settings.polling,
        symbol=settings.provider.symbol,
    )

    return {
        "provider": provider,
        "cache": cache,
        "rate_limit": rate_limit,
        "publisher": publisher,
        "scheduler": scheduler,
    }


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """Register SIGINT/SIGTERM to set ``stop_event``.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("coinwatch.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage component lifecycle within the FastAPI application.

    On startup: stores components on app.state, subscribes the WebSocket hub
    to the publisher, connects the provider, starts polling.

    On shutdown: stops polling, unsubscribes the hub, closes the provider.
    """
    logger = get_logger("coinwatch.main")
    components = app.state.components

    app.state.scheduler = components["scheduler"]
    app.state.cache = components["cache"]
    app.state.publisher = components["publisher"]

    publisher: ViewModelPublisher = components["publisher"]
    publisher.subscribe(app.state.hub.send_event)

    await components["provider"].connect()
    await components["scheduler"].start()

    logger.info("lifespan_started", symbol=components["scheduler"].symbol)

    yield

    await components["scheduler"].stop()
    publisher.unsubscribe(app.state.hub.send_event)
    await components["provider"].close()

    logger.info("coinwatch_stopped")


async def run() -> None:
    """Run the price service.

    When the bridge is enabled (SERVER_ENABLED=true, the default) uvicorn
    serves the FastAPI app and the lifespan manages startup/shutdown.
    Otherwise polling runs headless until SIGINT/SIGTERM, with published
    events only visible in the logs.
    """
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("coinwatch.main")

    components = _build_components(settings)

    if settings.server.enabled:
        from coinwatch.server.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_server",
            host=settings.server.host,
            port=settings.server.port,
            symbol=settings.provider.symbol,
        )

        config = uvicorn.Config(
            app,
            host=settings.server.host,
            port=settings.server.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        stop_event = asyncio.Event()
        _setup_signal_handlers(stop_event)

        async def _log_event(event: str, payload: dict[str, Any]) -> None:
            logger.info(
                "event_published",
                event_name=event,
                price=payload.get("price"),
                change_24h=payload.get("change24h"),
                period=payload.get("period"),
                error=payload.get("error"),
            )

        components["publisher"].subscribe(_log_event)

        logger.info("starting_headless", symbol=settings.provider.symbol)

        try:
            await components["provider"].connect()
            await components["scheduler"].start()
            await stop_event.wait()
        finally:
            await components["scheduler"].stop()
            await components["provider"].close()
            logger.info("coinwatch_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
