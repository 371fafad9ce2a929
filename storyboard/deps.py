from typing import Optional

from fastapi import Depends, Request

from .errors import StoreError
from .models.users import User
from .services import AuthService, StoryService
from .store import Store

SESSION_COOKIE = 'session-id'


def get_store(request: Request) -> Store:
    store = getattr(request.app.state, 'store', None)
    if store is None:
        raise StoreError('store is not initialised')
    return store


def get_auth_service(request: Request, store: Store = Depends(get_store)) -> AuthService:
    return AuthService(store, session_ttl=request.app.state.session_ttl)


def get_story_service(store: Store = Depends(get_store)) -> StoryService:
    return StoryService(store)


async def get_current_user(request: Request, auth: AuthService = Depends(get_auth_service)) -> Optional[User]:
    """The signed-in user for the session cookie, or None."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    return await auth.resolve_session(token)
