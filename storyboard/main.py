import asyncio
import logging
import sys
import time
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request, Depends
from pythonjsonlogger import jsonlogger

from .config import Settings
from .deps import get_store
from .errors import ConfigError, StoreError, register_error_handlers
from .lifecycle import LifecycleManager
from .metrics import LATENCY, REQUESTS, init_metrics
from .routes import router
from .store import Store

logger = logging.getLogger('storyboard')


def setup_logging(level: str = 'INFO') -> None:
    # structured logging, configured once
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def create_app(settings: Optional[Settings] = None, store: Optional[Store] = None) -> FastAPI:
    """Build the application.

    With an explicit ``store`` the caller owns the pool. Otherwise the pool
    is acquired on startup and disposed on shutdown by a LifecycleManager.
    """
    if settings is None:
        settings = Settings.from_env()
    setup_logging(settings.log_level)

    app = FastAPI(title='Storyboard', version='0.1.0')
    app.state.store = store
    app.state.session_ttl = timedelta(minutes=settings.session_ttl_minutes)
    app.state.cookie_secure = settings.session_cookie_secure

    register_error_handlers(app)
    app.include_router(router)

    @app.get('/healthz')
    async def healthz(store: Store = Depends(get_store)):
        await store.ping()
        return {'status': 'ok'}

    @app.middleware('http')
    async def log_requests(request: Request, call_next):
        logger.info({'msg': 'request_start', 'method': request.method, 'path': request.url.path})
        started = time.perf_counter()
        response = await call_next(request)
        LATENCY.labels(request.method).observe(time.perf_counter() - started)
        REQUESTS.labels(request.method, str(response.status_code)).inc()
        logger.info({'msg': 'request_end', 'status': response.status_code})
        return response

    if store is None:
        lifecycle = LifecycleManager(settings)

        @app.on_event('startup')
        async def startup():
            app.state.store = await lifecycle.startup()

        @app.on_event('shutdown')
        async def shutdown():
            await lifecycle.shutdown()
            app.state.store = None

    return app


async def _serve(settings: Settings) -> None:
    lifecycle = LifecycleManager(settings)
    store = await lifecycle.startup()
    try:
        app = create_app(settings, store=store)
        await lifecycle.serve(app)
    finally:
        await lifecycle.shutdown()


def run() -> None:
    """Console entry point. Configuration and pool errors abort before serving."""
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        setup_logging()
        logger.error({'msg': 'config_error', 'error': e.message})
        sys.exit(1)
    setup_logging(settings.log_level)
    init_metrics(settings.metrics_port)
    try:
        asyncio.run(_serve(settings))
    except (ConfigError, StoreError) as e:
        logger.error({'msg': 'startup_failed', 'error': e.message})
        sys.exit(1)


if __name__ == '__main__':
    run()
