"""
Process lifecycle: acquire the store, serve, drain on SIGINT/SIGTERM.

uvicorn's own signal capture is switched off; this manager owns the
SIGINT and SIGTERM handlers. On a signal the server
stops accepting connections and in-flight requests get
``settings.shutdown_timeout`` seconds to finish.
"""
import asyncio
import contextlib
import logging
import signal
from typing import Optional

import uvicorn

from .config import Settings
from .store import Store

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class _Server(uvicorn.Server):
    @contextlib.contextmanager
    def capture_signals(self):
        yield

    def install_signal_handlers(self):
        pass


class LifecycleManager:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.store: Optional[Store] = None

    async def startup(self) -> Store:
        """Create the pool and prove it works. Any failure here is fatal."""
        logger.info({'msg': 'store_connecting', 'url': self.settings.database_url})
        store = Store(
            self.settings.database_url,
            pool_size=self.settings.pool_size,
            max_overflow=self.settings.max_overflow,
            enforce_foreign_keys=self.settings.enforce_foreign_keys,
        )
        try:
            await store.ping()
        except Exception:
            await store.close()
            raise
        self.store = store
        logger.info({'msg': 'store_ready', 'pool_size': self.settings.pool_size})
        return store

    async def shutdown(self) -> None:
        if self.store is not None:
            await self.store.close()
            self.store = None

    async def wait_for_shutdown_signal(self) -> str:
        loop = asyncio.get_running_loop()
        received: asyncio.Future = loop.create_future()

        def _on_signal(sig):
            if not received.done():
                received.set_result(sig)

        installed = []
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, _on_signal, sig)
                installed.append(sig)
            except NotImplementedError:
                # no loop signal support (Windows); SIGINT still arrives as KeyboardInterrupt
                pass
        try:
            sig = await received
        finally:
            for s in installed:
                loop.remove_signal_handler(s)
        name = signal.Signals(sig).name
        logger.info({'msg': 'signal received, starting graceful shutdown', 'signal': name})
        return name

    async def serve(self, app) -> None:
        config = uvicorn.Config(
            app,
            host=self.settings.host,
            port=self.settings.port,
            log_config=None,
            timeout_graceful_shutdown=self.settings.shutdown_timeout,
        )
        server = _Server(config)
        logger.info({'msg': 'listening', 'host': self.settings.host, 'port': self.settings.port})
        serve_task = asyncio.create_task(server.serve())
        signal_task = asyncio.create_task(self.wait_for_shutdown_signal())
        done, _ = await asyncio.wait({serve_task, signal_task}, return_when=asyncio.FIRST_COMPLETED)
        if signal_task in done:
            server.should_exit = True
            await serve_task
        else:
            signal_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await signal_task
            # surface a crashed server
            serve_task.result()
        logger.info({'msg': 'server_stopped'})
