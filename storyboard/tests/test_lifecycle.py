import asyncio
import os
import signal
import socket
import sys
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from storyboard.config import Settings
from storyboard.errors import ConfigError, StoreError
from storyboard.lifecycle import LifecycleManager
from storyboard.main import create_app
from storyboard.metrics import init_metrics
from storyboard.store import Store


@pytest.mark.asyncio
async def test_startup_failure_is_fatal(tmp_path):
    manager = LifecycleManager(Settings(database_url=f'sqlite+aiosqlite:///{tmp_path / "missing" / "x.db"}'))
    with pytest.raises(StoreError):
        await manager.startup()
    assert manager.store is None


@pytest.mark.asyncio
async def test_startup_and_shutdown(settings):
    manager = LifecycleManager(settings)
    store = await manager.startup()
    assert isinstance(store, Store)
    await store.ping()
    await manager.shutdown()
    assert manager.store is None


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == 'win32', reason='POSIX signals')
@pytest.mark.parametrize('sig', [signal.SIGTERM, signal.SIGINT])
async def test_wait_for_shutdown_signal(settings, sig):
    manager = LifecycleManager(settings)
    waiter = asyncio.create_task(manager.wait_for_shutdown_signal())
    await asyncio.sleep(0.05)
    os.kill(os.getpid(), sig)
    name = await asyncio.wait_for(waiter, timeout=2)
    assert name == signal.Signals(sig).name


def test_app_without_store_acquires_pool_on_startup(settings):
    app = create_app(settings)
    assert app.state.store is None
    with TestClient(app) as tc:
        assert app.state.store is not None
        assert tc.get('/healthz').json() == {'status': 'ok'}
    assert app.state.store is None


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == 'win32', reason='POSIX signals')
async def test_serve_drains_and_exits_on_sigterm(db_url, store):
    settings = Settings(database_url=db_url, port=0, shutdown_timeout=2)
    manager = LifecycleManager(settings)
    app = create_app(settings, store=store)
    serving = asyncio.create_task(manager.serve(app))
    await asyncio.sleep(0.3)
    assert not serving.done()
    os.kill(os.getpid(), signal.SIGTERM)
    await asyncio.wait_for(serving, timeout=5)


def test_metrics_exporter_disabled_without_port():
    assert init_metrics(None) is False


@pytest.mark.asyncio
@pytest.mark.parametrize('url', ['not a url', 'sqlite+nosuchdriver:///x.db', 'mysql://u:p@h/db'])
async def test_startup_with_unusable_url_is_config_error(url):
    manager = LifecycleManager(Settings(database_url=url))
    with pytest.raises(ConfigError):
        await manager.startup()
    assert manager.store is None


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


async def _wait_until_up(client):
    for _ in range(100):
        try:
            await client.get('/healthz')
            return
        except httpx.TransportError:
            await asyncio.sleep(0.05)
    raise AssertionError('server did not start')


def _app_with_slow_route(settings, store, seconds):
    app = create_app(settings, store=store)

    @app.get('/slow')
    async def slow():
        await asyncio.sleep(seconds)
        return {'done': True}

    return app


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == 'win32', reason='POSIX signals')
async def test_sigterm_lets_in_flight_request_finish(db_url, store):
    settings = Settings(database_url=db_url, port=_free_port(), shutdown_timeout=5)
    app = _app_with_slow_route(settings, store, 1)
    serving = asyncio.create_task(LifecycleManager(settings).serve(app))
    async with httpx.AsyncClient(base_url=f'http://127.0.0.1:{settings.port}', timeout=10) as ac:
        await _wait_until_up(ac)
        pending = asyncio.create_task(ac.get('/slow'))
        await asyncio.sleep(0.3)
        os.kill(os.getpid(), signal.SIGTERM)
        res = await pending
    assert res.status_code == 200
    assert res.json() == {'done': True}
    await asyncio.wait_for(serving, timeout=5)


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == 'win32', reason='POSIX signals')
async def test_sigterm_cuts_off_requests_past_shutdown_timeout(db_url, store):
    settings = Settings(database_url=db_url, port=_free_port(), shutdown_timeout=1)
    app = _app_with_slow_route(settings, store, 30)
    serving = asyncio.create_task(LifecycleManager(settings).serve(app))
    async with httpx.AsyncClient(base_url=f'http://127.0.0.1:{settings.port}', timeout=10) as ac:
        await _wait_until_up(ac)
        pending = asyncio.create_task(ac.get('/slow'))
        await asyncio.sleep(0.3)
        started = time.monotonic()
        os.kill(os.getpid(), signal.SIGTERM)
        await asyncio.wait_for(serving, timeout=5)
        assert time.monotonic() - started < 5
        try:
            res = await asyncio.wait_for(pending, timeout=5)
        except (httpx.TransportError, asyncio.TimeoutError):
            res = None
    assert res is None or res.status_code != 200
