"""
Auth and story operations against the store.

Each call borrows one session from the store for the duration of its own
queries. SQLAlchemy failures leave this module as ``StoreError``.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .auth import digest, digests_match, generate_session_token, hash_token, new_salt
from .errors import AuthFailure, ConstraintViolation, CreatorNotFound, StoreError, ValidationError
from .models.users import User
from .models.stories import Story
from .models.session_tokens import SessionToken
from .schemas.stories import StoryOut
from .schemas.users import UserOut
from .store import Store

logger = logging.getLogger(__name__)

# digested for unknown usernames so both failure paths do the same work
_DUMMY_SALT = new_salt()

# ids outside a 64-bit signed INTEGER cannot name a row
MIN_ID = -2 ** 63
MAX_ID = 2 ** 63 - 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@contextmanager
def store_errors(action: str):
    try:
        yield
    except IntegrityError as e:
        raise ConstraintViolation(f'{action}: constraint violated') from e
    except SQLAlchemyError as e:
        logger.debug({'msg': 'store_error', 'action': action, 'error': str(e)})
        raise StoreError(f'{action} failed') from e


class AuthService:
    def __init__(self, store: Store, session_ttl: timedelta = timedelta(days=7)):
        self.store = store
        self.session_ttl = session_ttl

    async def verify(self, username: str, password: str) -> User:
        """Check a username/password pair against the stored salted digest.

        Unknown usernames and wrong passwords raise the same ``AuthFailure``.
        A failing lookup query raises ``StoreError``.
        """
        with store_errors('user lookup'):
            async with self.store.session() as session:
                q = await session.execute(select(User).where(User.username == username))
                user = q.scalars().first()
        if user is None:
            digests_match(digest(password, _DUMMY_SALT), digest('', _DUMMY_SALT))
            raise AuthFailure('Login failed!')
        stored = digest(user.password, user.salt)
        candidate = digest(password, user.salt)
        if not digests_match(stored, candidate):
            raise AuthFailure('Login failed!')
        return user

    async def start_session(self, user: User, user_agent: Optional[str] = None,
                            ip: Optional[str] = None) -> Tuple[str, SessionToken]:
        token = generate_session_token()
        st = SessionToken(
            user_id=user.id,
            token_hash=hash_token(token),
            user_agent=(user_agent or '')[:255] or None,
            ip=ip,
            expires_at=_utcnow() + self.session_ttl,
        )
        with store_errors('session create'):
            async with self.store.session() as session:
                session.add(st)
                await session.commit()
                await session.refresh(st)
        logger.info({'msg': 'session_started', 'user_id': user.id, 'session_id': st.id})
        return token, st

    async def resolve_session(self, token: str) -> Optional[User]:
        if not token:
            return None
        with store_errors('session lookup'):
            async with self.store.session() as session:
                q = await session.execute(
                    select(User)
                    .join(SessionToken, SessionToken.user_id == User.id)
                    .where(SessionToken.token_hash == hash_token(token),
                           SessionToken.revoked_at.is_(None),
                           SessionToken.expires_at > _utcnow())
                )
                return q.scalars().first()

    async def end_session(self, token: str) -> bool:
        with store_errors('session revoke'):
            async with self.store.session() as session:
                q = await session.execute(select(SessionToken).where(
                    SessionToken.token_hash == hash_token(token), SessionToken.revoked_at.is_(None)))
                st = q.scalars().first()
                if not st:
                    return False
                st.revoked_at = _utcnow()
                await session.commit()
                return True

    async def add_user(self, username: str, password: str, salt: Optional[str] = None) -> User:
        """Seed a user row. There is no HTTP path for this."""
        user = User(username=username, password=password, salt=salt or new_salt())
        with store_errors('user create'):
            async with self.store.session() as session:
                session.add(user)
                await session.commit()
                await session.refresh(user)
        return user


class StoryService:
    def __init__(self, store: Store):
        self.store = store

    async def list_stories(self) -> List[StoryOut]:
        # inner join: stories whose creator is gone are left out
        with store_errors('story list'):
            async with self.store.session() as session:
                res = await session.execute(
                    select(Story.id, Story.title, User.username.label('creator'))
                    .join(User, User.id == Story.creator)
                    .order_by(Story.id)
                )
                return [StoryOut(id=r.id, title=r.title, creator=r.creator) for r in res.all()]

    async def list_users(self) -> List[UserOut]:
        with store_errors('user list'):
            async with self.store.session() as session:
                res = await session.execute(select(User.id, User.username).order_by(User.id))
                return [UserOut(id=r.id, username=r.username) for r in res.all()]

    async def create_story(self, creator_id: int, title: str) -> StoryOut:
        if title is None or not title.strip():
            raise ValidationError('title must not be blank')
        if not MIN_ID <= creator_id <= MAX_ID:
            raise CreatorNotFound(creator_id)
        with store_errors('story create'):
            async with self.store.session() as session:
                async with session.begin():
                    q = await session.execute(select(User.username).where(User.id == creator_id))
                    username = q.scalar_one_or_none()
                    if username is None:
                        raise CreatorNotFound(creator_id)
                    story = Story(title=title, creator=creator_id)
                    session.add(story)
                    await session.flush()
                    story_id = story.id
        logger.info({'msg': 'story_created', 'story_id': story_id, 'creator': creator_id})
        return StoryOut(id=story_id, title=title, creator=username)

    async def delete_story(self, story_id: int) -> None:
        """Delete by id. Unknown ids are a no-op."""
        if not MIN_ID <= story_id <= MAX_ID:
            logger.info({'msg': 'story_deleted', 'story_id': story_id, 'rows': 0})
            return
        with store_errors('story delete'):
            async with self.store.session() as session:
                async with session.begin():
                    res = await session.execute(delete(Story).where(Story.id == story_id))
                    rows = res.rowcount
        logger.info({'msg': 'story_deleted', 'story_id': story_id, 'rows': rows})
