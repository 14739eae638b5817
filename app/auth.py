"""Password accounts and opaque bearer-token sessions.

Flow Diagram — Identity Resolution
==================================
::
    ┌──────────────────┐
    │ Authorization:   │
    │ Bearer <token>   │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐  missing / malformed
    │ sha256(token)    │─────────────────────┐
    └────────┬─────────┘                     │
             ▼                               │
    ┌──────────────────┐  unknown / expired  │
    │ auth_sessions    │─────────────────────┤
    │ lookup           │                     │
    └────────┬─────────┘                     ▼
             ▼                      ┌──────────────────┐
    ┌──────────────────┐            │ AuthContext      │
    │ AuthContext(user)│            │ .anonymous()     │
    └──────────────────┘            └──────────────────┘

How to Use
===========
**Step 1 — Register and log in**::
    service = AuthService(db, settings)
    user = await service.register(UserRegister(name="Ada", email="ada@example.com", password="secret1"))
    token, session, user = await service.login(UserLogin(email="ada@example.com", password="secret1"))

**Step 2 — Resolve a caller**::
    auth = await service.resolve_token(token)
    user_id = auth.require_user_id()

Key Behaviours
===============
- Only the SHA-256 of a token is stored; the raw token is returned once.
- Identity always comes from a server-side session lookup, never from a
  client-supplied user id.
- Passwords are hashed with bcrypt.
"""

import datetime
import hashlib
import logging
import secrets
from dataclasses import dataclass

import bcrypt
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.errors import ConflictError, UnauthorizedError
from app.models import AuthSession, User, ensure_utc, utcnow
from app.repository import DuplicateEmailError, SessionRepository, UserRepository
from app.schemas import UserLogin, UserRegister

__all__ = [
    "AuthContext",
    "AuthService",
    "hash_password",
    "hash_token",
    "verify_password",
]

logger = logging.getLogger("urlshortener")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session_token() -> str:
    return secrets.token_urlsafe(32)


@dataclass(frozen=True)
class AuthContext:
    """Server-verified identity of the caller; ``user`` is None when anonymous."""

    user: User | None = None
    user_id: int | None = None
    token_hash: str | None = None

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls()

    @classmethod
    def for_user(cls, user: User, token_hash: str | None = None) -> "AuthContext":
        return cls(user=user, user_id=user.id, token_hash=token_hash)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def require_user_id(self) -> int:
        if self.user_id is None:
            raise UnauthorizedError()
        return self.user_id


class AuthService:
    def __init__(self, db: AsyncSession, settings: Settings) -> None:
        self._users = UserRepository(db)
        self._sessions = SessionRepository(db)
        self._settings = settings

    async def register(self, payload: UserRegister) -> User:
        user = User(
            email=payload.email,
            name=payload.name.strip(),
            password_hash=hash_password(payload.password),
        )
        try:
            user = await self._users.insert(user)
        except DuplicateEmailError as exc:
            logger.info(f"Registration rejected, email taken: {payload.email}")
            raise ConflictError("Email is already registered") from exc
        logger.info(f"User registered: id={user.id}")
        return user

    async def login(self, payload: UserLogin) -> tuple[str, AuthSession, User]:
        user = await self._users.get_by_email(payload.email)
        if user is None or not verify_password(payload.password, user.password_hash):
            logger.info(f"Login failed for {payload.email}")
            raise UnauthorizedError("Invalid email or password")

        purged = await self._sessions.delete_expired()
        if purged:
            logger.debug(f"Purged {purged} expired sessions")

        token = create_session_token()
        expires_at = utcnow() + datetime.timedelta(hours=self._settings.AUTH_TOKEN_TTL_HOURS)
        session = await self._sessions.create(user.id, hash_token(token), expires_at)
        logger.info(f"User logged in: id={user.id}")
        return token, session, user

    async def logout(self, auth: AuthContext) -> None:
        auth.require_user_id()
        if auth.token_hash is not None:
            await self._sessions.delete_by_token_hash(auth.token_hash)

    async def resolve_token(self, token: str | None) -> AuthContext:
        if not token:
            return AuthContext.anonymous()

        token_hash = hash_token(token)
        session = await self._sessions.get_by_token_hash(token_hash)
        if session is None:
            return AuthContext.anonymous()
        if ensure_utc(session.expires_at) <= utcnow():
            logger.debug(f"Expired session for user id={session.user_id}")
            await self._sessions.delete_by_token_hash(token_hash)
            return AuthContext.anonymous()

        user = await self._users.get(session.user_id)
        if user is None:
            return AuthContext.anonymous()
        return AuthContext.for_user(user, token_hash)
