import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from storyboard.config import Settings
from storyboard.main import create_app
from storyboard.services import AuthService
from storyboard.store import Store


@pytest.fixture
def db_url(tmp_path):
    return f'sqlite+aiosqlite:///{tmp_path / "storyboard.db"}'


@pytest.fixture
def settings(db_url):
    return Settings(database_url=db_url)


@pytest_asyncio.fixture
async def store(db_url):
    store = Store(db_url)
    await store.create_all()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def alice(store):
    return await AuthService(store).add_user('alice', 'pw', salt='xyz')


@pytest_asyncio.fixture
async def bob(store, alice):
    return await AuthService(store).add_user('bob', 'hunter2', salt='pepper')


@pytest_asyncio.fixture
async def client(settings, store, alice):
    app = create_app(settings, store=store)
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac
