"""JSON command endpoints: fetch price now, fetch chart for a period, period change."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from coinwatch.exceptions import MarketDataError
from coinwatch.market_data.period_change import resolve_period_change
from coinwatch.market_data.publisher import is_error
from coinwatch.models import Period

log = structlog.get_logger(__name__)

router = APIRouter()


def _parse_period(value: str) -> Period | None:
    try:
        return Period.parse(value)
    except ValueError:
        return None


def _unknown_period(value: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": f"Unknown period {value!r}", "periods": [p.value for p in Period]},
    )


@router.get("/price")
async def fetch_price(request: Request) -> JSONResponse:
    """Poll the provider now and return the published price-update payload."""
    payload = await request.app.state.scheduler.poll_once()
    return JSONResponse(status_code=503 if is_error(payload) else 200, content=payload)


@router.get("/view")
async def get_view(request: Request) -> JSONResponse:
    """Return the cached view without contacting the provider."""
    payload = await request.app.state.scheduler.current_payload()
    return JSONResponse(status_code=503 if is_error(payload) else 200, content=payload)


@router.get("/chart/{period}")
async def fetch_chart(request: Request, period: str) -> JSONResponse:
    """Fetch the candle series for a period and return the chart-data-update payload."""
    parsed = _parse_period(period)
    if parsed is None:
        return _unknown_period(period)
    payload = await request.app.state.scheduler.fetch_period_candles(parsed)
    return JSONResponse(status_code=502 if is_error(payload) else 200, content=payload)


@router.get("/change/{period}")
async def get_period_change(request: Request, period: str) -> JSONResponse:
    """Percent change over a period, using a fresh period-specific series when available."""
    parsed = _parse_period(period)
    if parsed is None:
        return _unknown_period(period)

    scheduler = request.app.state.scheduler
    view = await request.app.state.cache.current_view()
    if view.snapshot is None:
        return JSONResponse(status_code=503, content={"error": "No price data available yet"})

    if parsed is not Period.ONE_DAY:
        try:
            view = view.with_series(await scheduler.fetch_period_series(parsed))
        except MarketDataError as exc:
            # Fall back to the cached default series
            log.debug("period_series_unavailable", period=parsed.value, error=str(exc))

    result = resolve_period_change(view, parsed, scheduler.now_ms())
    return JSONResponse(
        content={
            "period": result.period.value,
            "change": str(result.value),
            "approximate": result.approximate,
        }
    )


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Scheduler diagnostics: symbol, rate-limit state, last chart refresh."""
    return JSONResponse(content=request.app.state.scheduler.status())
