"""
upbank_proxy/app.py

FastAPI application entrypoint for the Up Bank proxy.

This module wires together:
- Logging configuration (file-based under LOG_DIR)
- The shared Up API client, transaction cache and self-ping scheduler,
  all kept on app.state for the lifetime of the process
- CORS and request logging middleware
- Domain routers under api/ (accounts, transactions)
"""

import time
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request

from upbank_proxy.api.accounts import router as accounts_router
from upbank_proxy.api.deps import get_settings, get_transaction_cache
from upbank_proxy.api.transactions import router as transactions_router
from upbank_proxy.cache import Clock, TransactionCache, utc_now
from upbank_proxy.clients.up_client import UpBankClient
from upbank_proxy.config import Settings, load_settings
from upbank_proxy.logging_config import get_logger, setup_logging
from upbank_proxy.scheduler import SelfPingScheduler
from upbank_proxy.schemas import CacheStatus, HealthOut
from upbank_proxy.sources import build_source

logger = get_logger("upbank_proxy")


def create_app(
    settings: Optional[Settings] = None,
    up_client: Optional[UpBankClient] = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """
    Build the app. `up_client` and `clock` are injectable for tests; by
    default the client is created from settings when the app starts.
    """
    settings = settings or load_settings()
    setup_logging(settings.log_dir, settings.log_level, settings.log_console_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = up_client or UpBankClient.from_settings(settings)
        source = build_source(settings, client)
        app.state.settings = settings
        app.state.up_client = client
        app.state.transaction_cache = TransactionCache(
            source,
            ttl=timedelta(minutes=settings.cache_ttl_minutes),
            clock=clock,
        )
        app.state.scheduler = None
        if settings.scheduler_enabled:
            app.state.scheduler = SelfPingScheduler.from_settings(settings)
            app.state.scheduler.start()
        logger.info(
            "Up Bank proxy starting data_source=%s ttl=%smin",
            settings.data_source,
            settings.cache_ttl_minutes,
        )
        try:
            yield
        finally:
            if app.state.scheduler is not None:
                await app.state.scheduler.stop()
            if up_client is None:
                await client.aclose()
            logger.info("Up Bank proxy shutting down")

    app = FastAPI(title="Up Bank Proxy", version="1.0.0", lifespan=lifespan)

    # CORS (open: Tableau and browser dashboards call this directly)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "HTTP %s %s from %s -> %s (%.1fms)",
            request.method,
            request.url.path,
            request.client.host if request.client else "?",
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    @app.get("/health", response_model=HealthOut)
    async def health(
        app_settings: Settings = Depends(get_settings),
        cache: TransactionCache = Depends(get_transaction_cache),
    ):
        """
        Health check; also reports the cache state without refreshing it.
        """
        entry = cache.peek()
        return HealthOut(
            status="healthy",
            data_source=app_settings.data_source,
            cache=CacheStatus(
                fetched_at=entry.fetched_at if entry else None,
                fresh=cache.is_fresh(entry),
                rows=len(entry.rows) if entry else 0,
            ),
        )

    app.include_router(accounts_router, prefix="/api")
    app.include_router(transactions_router, prefix="/api")
    return app


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        "upbank_proxy.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
