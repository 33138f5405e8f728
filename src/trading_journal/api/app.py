"""Trading journal HTTP API — FastAPI application.

JSON routes over an injected trade store:
  trades (list / create / read / update / delete / metrics) | analytics
  stats | calendar | health | Prometheus metrics

Every number a route returns is recomputed from the stored trade fields
by the metrics engine; stored derived values are only a fallback.

Usage::

    from trading_journal.api.app import create_app
    from trading_journal.storage import InMemoryTradeStore

    app = create_app(store=InMemoryTradeStore(), settings=settings)
"""

from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import tzinfo
from typing import Any, AsyncIterator

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from trading_journal import __version__
from trading_journal.core.config import Settings, resolve_zone
from trading_journal.core.enums import EquityBucket, StorageBackend
from trading_journal.core.errors import (
    ConfigError,
    InvalidQueryError,
    InvalidTradeInputError,
    StoreUnavailableError,
    TradeNotFoundError,
)
from trading_journal.core.interfaces import ITradeStore
from trading_journal.core.models import Pagination, TradeRecord
from trading_journal.core.query import build_trade_query
from trading_journal.journal.aggregation import compute_aggregate_statistics
from trading_journal.journal.calculations import compute_trade_metrics
from trading_journal.journal.calendar import build_calendar, in_window, resolve_month_window
from trading_journal.journal.resilience import (
    derived_fields,
    effective_balance,
    evaluate_trade,
    stored_net_pnl,
)
from trading_journal.observability.logger import new_request_id, set_request_id
from trading_journal.observability.metrics import SYSTEM_INFO, record_fallback, render_latest
from trading_journal.storage.memory import InMemoryTradeStore

from .schemas import TradeCreate, TradeUpdate

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


@asynccontextmanager
async def _sql_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the SQL engine for the app's lifetime."""
    from trading_journal.storage.sql import (
        SqlTradeStore,
        create_all,
        create_engine,
        create_session_factory,
    )

    cfg = app.state.settings.storage
    engine = create_engine(cfg.database_url, pool_size=cfg.pool_size, echo=cfg.echo)
    if cfg.create_tables:
        await create_all(engine)
    app.state.store = SqlTradeStore(create_session_factory(engine))
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("SQL engine disposed")


def create_app(
    store: ITradeStore | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create the journal API application.

    Without an explicit ``store`` the backend named in
    ``settings.storage.backend`` is used: an empty in-memory store, or a
    SQL store opened on startup.
    """
    settings = settings or Settings()
    default_balance = settings.analytics.default_portfolio_balance
    use_sql = store is None and settings.storage.backend is StorageBackend.SQL

    app = FastAPI(
        title=settings.api.title,
        version=__version__,
        lifespan=_sql_lifespan if use_sql else None,
    )

    # Store component references on app state
    app.state.settings = settings
    app.state.store = store if store is not None or use_sql else InMemoryTradeStore()

    SYSTEM_INFO.info({"version": __version__, "backend": settings.storage.backend.value})

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def get_store(request: Request) -> ITradeStore:
        return request.app.state.store

    def get_user_id(request: Request) -> str:
        user_id = request.headers.get(settings.api.user_header, "").strip()
        if not user_id:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return user_id

    def _zone(tz: str | None) -> tzinfo:
        try:
            return resolve_zone(tz) if tz else settings.zone()
        except ConfigError as exc:
            raise InvalidQueryError(str(exc)) from exc

    async def _owned(store: ITradeStore, trade_id: str, user_id: str) -> TradeRecord:
        trade = await store.get(trade_id)
        if trade is None or trade.user_id != user_id:
            raise TradeNotFoundError(trade_id)
        return trade

    def _with_derived(record: TradeRecord) -> dict[str, Any]:
        """Derived fields to persist, or nothing when recomputation fails."""
        try:
            return derived_fields(record, default_balance=default_balance)
        except InvalidTradeInputError as exc:
            logger.warning("Keeping supplied metrics for trade %s: %s", record.id, exc)
            return {}

    # ------------------------------------------------------------------
    # Middleware
    # ------------------------------------------------------------------

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER)
        if incoming:
            set_request_id(incoming)
            rid = incoming
        else:
            rid = new_request_id()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    @app.get("/trades")
    async def list_trades(
        request: Request,
        user_id: str = Depends(get_user_id),
        store: ITradeStore = Depends(get_store),
    ) -> dict[str, Any]:
        query = build_trade_query(
            user_id,
            request.query_params,
            default_limit=settings.api.default_page_size,
            max_limit=settings.api.max_page_size,
        )
        trades = await store.find(query)
        total = await store.count(query.unpaged())
        names = await store.strategy_names(user_id)
        limit = query.limit or settings.api.default_page_size
        return {
            "trades": [
                evaluate_trade(
                    t, strategy_names=names, default_balance=default_balance,
                ).to_response()
                for t in trades
            ],
            "pagination": Pagination(
                total=total,
                page=query.page,
                limit=limit,
                pages=math.ceil(total / limit) if total else 0,
            ).model_dump(),
        }

    @app.post("/trades", status_code=201)
    async def create_trade(
        payload: TradeCreate,
        user_id: str = Depends(get_user_id),
        store: ITradeStore = Depends(get_store),
    ) -> dict[str, Any]:
        record = TradeRecord(user_id=user_id, **payload.model_dump())
        record = record.model_copy(update=_with_derived(record))
        stored = await store.insert(record)
        names = await store.strategy_names(user_id)
        return evaluate_trade(
            stored, strategy_names=names, default_balance=default_balance,
        ).to_response()

    @app.get("/trades/{trade_id}")
    async def get_trade(
        trade_id: str,
        user_id: str = Depends(get_user_id),
        store: ITradeStore = Depends(get_store),
    ) -> dict[str, Any]:
        # No ownership check: trades can be shared by id
        trade = await store.get(trade_id)
        if trade is None:
            raise TradeNotFoundError(trade_id)
        names = await store.strategy_names(trade.user_id)
        return evaluate_trade(
            trade, strategy_names=names, default_balance=default_balance,
        ).to_response()

    @app.put("/trades/{trade_id}")
    async def update_trade(
        trade_id: str,
        payload: TradeUpdate,
        user_id: str = Depends(get_user_id),
        store: ITradeStore = Depends(get_store),
    ) -> dict[str, Any]:
        current = await _owned(store, trade_id, user_id)
        changes = payload.changes()
        merged = TradeRecord.model_validate({**current.model_dump(), **changes})
        changes.update(_with_derived(merged))
        updated = await store.update(trade_id, user_id, changes)
        if updated is None:
            raise TradeNotFoundError(trade_id)
        names = await store.strategy_names(user_id)
        return evaluate_trade(
            updated, strategy_names=names, default_balance=default_balance,
        ).to_response()

    @app.delete("/trades/{trade_id}")
    async def delete_trade(
        trade_id: str,
        user_id: str = Depends(get_user_id),
        store: ITradeStore = Depends(get_store),
    ) -> dict[str, Any]:
        if not await store.delete(trade_id, user_id):
            raise TradeNotFoundError(trade_id)
        logger.info("Deleted trade %s for user %s", trade_id, user_id)
        return {"deleted": trade_id}

    @app.get("/trades/{trade_id}/metrics")
    async def trade_metrics(
        trade_id: str,
        stop_loss: float | None = None,
        take_profit: float | None = None,
        portfolio_balance: float | None = None,
        fees: float | None = None,
        current_price: float | None = None,
        user_id: str = Depends(get_user_id),
        store: ITradeStore = Depends(get_store),
    ) -> dict[str, Any]:
        trade = await store.get(trade_id)
        if trade is None:
            raise TradeNotFoundError(trade_id)
        overrides = {
            "stop_loss": stop_loss,
            "take_profit": take_profit,
            "portfolio_balance": portfolio_balance,
            "fees": fees,
            "current_price": current_price,
        }
        try:
            metrics = compute_trade_metrics(
                trade,
                stop_loss=stop_loss,
                take_profit=take_profit,
                portfolio_balance=(
                    portfolio_balance
                    if portfolio_balance is not None
                    else effective_balance(trade, default_balance)
                ),
                fees=fees,
                current_price=current_price,
            )
        except InvalidTradeInputError as exc:
            # A bad query parameter is the caller's error; a bad stored record is not
            if overrides.get(exc.field) is not None:
                raise
            logger.warning(
                "Metric recomputation failed for trade %s (%s); using stored values",
                trade_id, exc,
            )
            record_fallback(exc.field)
            return {
                "trade_id": trade_id,
                "metrics_degraded": True,
                "is_closed": trade.is_closed,
                "gross_pnl": trade.gross_pnl,
                "net_pnl": stored_net_pnl(trade),
                "risk_amount": trade.risk_amount,
                "r_multiple": None,
                "account_risk_percent": trade.account_risk,
            }
        return {"trade_id": trade_id, "metrics_degraded": False, **metrics.model_dump()}

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    @app.get("/analytics/stats")
    async def analytics_stats(
        request: Request,
        initial_balance: float | None = None,
        tz: str | None = None,
        equity_bucket: str = EquityBucket.TRADE.value,
        user_id: str = Depends(get_user_id),
        store: ITradeStore = Depends(get_store),
    ) -> JSONResponse:
        try:
            bucket = EquityBucket(equity_bucket)
        except ValueError as exc:
            raise InvalidQueryError(f"Invalid equity_bucket: {equity_bucket!r}") from exc
        zone = _zone(tz)

        query = build_trade_query(user_id, request.query_params).unpaged()
        trades = await store.find(query)
        names = await store.strategy_names(user_id)
        stats = compute_aggregate_statistics(
            trades,
            strategy_names=names,
            zone=zone,
            initial_balance=initial_balance,
            equity_bucket=bucket,
            default_balance=default_balance,
        )
        return JSONResponse(stats.model_dump(mode="json"))

    @app.get("/calendar")
    async def calendar(
        month: str | None = None,
        portfolio_id: str | None = None,
        tz: str | None = None,
        user_id: str = Depends(get_user_id),
        store: ITradeStore = Depends(get_store),
    ) -> dict[str, Any]:
        zone = _zone(tz)
        start, end = resolve_month_window(
            month, zone=zone, lookback_months=settings.analytics.calendar_lookback_months,
        )
        # Insertion order decides each day's first emotion
        query = build_trade_query(
            user_id, {"portfolio_id": portfolio_id, "sort": "created_at", "order": "asc"},
        )
        trades = await store.find(replace(query, start=start))
        days = build_calendar((t for t in trades if in_window(t, start, end)), zone=zone)
        return {
            "month": month,
            "start": start.isoformat(),
            "end": end.isoformat() if end else None,
            "days": [d.model_dump(mode="json") for d in days],
        }

    # ------------------------------------------------------------------
    # Health / metrics
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics() -> Response:
        payload, content_type = render_latest()
        return Response(content=payload, media_type=content_type)

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    @app.exception_handler(TradeNotFoundError)
    async def not_found_handler(request: Request, exc: TradeNotFoundError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.exception_handler(InvalidQueryError)
    async def bad_query_handler(request: Request, exc: InvalidQueryError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=400)

    @app.exception_handler(InvalidTradeInputError)
    async def bad_trade_handler(
        request: Request, exc: InvalidTradeInputError,
    ) -> JSONResponse:
        return JSONResponse(
            {"detail": str(exc), "field": exc.field}, status_code=422,
        )

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(
        request: Request, exc: StoreUnavailableError,
    ) -> JSONResponse:
        logger.error("Store unavailable on %s: %s", request.url.path, exc)
        return JSONResponse({"detail": "Trade store unavailable"}, status_code=503)

    return app
