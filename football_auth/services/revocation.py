"""Revocation store: tokens to reject even though they have not expired.

Entries are keyed by the SHA-256 fingerprint of the raw token, so the store
never holds usable credentials and never needs to parse a token. Every
entry carries its own expiry; a lookup ignores expired entries, which keeps
results correct whether or not eviction has run.

Backends raise ``RevocationStoreUnavailableError`` on any failure to reach
the underlying store. Callers treat that as "cannot verify" and reject.
"""

import asyncio
import hashlib
import logging
import math
import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from redis import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from football_auth.core.config import Settings
from football_auth.core.errors import RevocationStoreUnavailableError
from football_auth.models.revoked_token import RevokedToken

logger = logging.getLogger(__name__)


def token_fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _ttl_seconds(ttl: timedelta) -> int:
    # Round up so an entry never expires before the token it covers
    return max(1, math.ceil(ttl.total_seconds()))


class RevocationStore(Protocol):
    async def revoke(self, token: str, ttl: timedelta) -> None: ...

    async def is_revoked(self, token: str) -> bool: ...

    async def ping(self) -> bool: ...


class MemoryRevocationStore:
    """In-process store for single-worker deployments and tests.

    Thread-safe; expired entries are dropped on lookup and by
    ``cleanup_expired()``.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: dict[str, float] = {}  # fingerprint -> expiry timestamp
        self._lock = threading.Lock()
        self._clock = clock

    async def revoke(self, token: str, ttl: timedelta) -> None:
        key = token_fingerprint(token)
        expires_at = self._clock() + _ttl_seconds(ttl)
        with self._lock:
            # Re-revoking may extend an entry but never shortens it
            self._entries[key] = max(expires_at, self._entries.get(key, 0.0))

    async def is_revoked(self, token: str) -> bool:
        key = token_fingerprint(token)
        with self._lock:
            expires_at = self._entries.get(key)
            if expires_at is None:
                return False
            if self._clock() >= expires_at:
                del self._entries[key]
                return False
            return True

    async def ping(self) -> bool:
        return True

    def cleanup_expired(self) -> int:
        """Remove expired entries. Returns count removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, exp in self._entries.items() if now >= exp]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class DatabaseRevocationStore:
    """Store backed by the ``revoked_tokens`` table.

    Each call uses its own short-lived session so revocation state is
    committed independently of the request's unit of work.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self._session_maker = session_maker
        self._clock = clock

    async def revoke(self, token: str, ttl: timedelta) -> None:
        key = token_fingerprint(token)
        now = self._clock()
        expires_at = now + timedelta(seconds=_ttl_seconds(ttl))
        try:
            async with self._session_maker() as session:
                try:
                    await self._upsert(session, key, now, expires_at)
                    await session.commit()
                except IntegrityError:
                    # A concurrent logout inserted the same token first
                    await session.rollback()
                    await self._upsert(session, key, now, expires_at)
                    await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to record token revocation: {e}")
            raise RevocationStoreUnavailableError() from e

    async def is_revoked(self, token: str) -> bool:
        key = token_fingerprint(token)
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(RevokedToken.token_hash).where(
                        RevokedToken.token_hash == key,
                        RevokedToken.expires_at > self._clock(),
                    )
                )
                return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            logger.error(f"Revocation lookup failed: {e}")
            raise RevocationStoreUnavailableError() from e

    async def ping(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(RevokedToken.token_hash).limit(1))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Revocation store ping failed: {e}")
            return False

    async def cleanup_expired(self) -> int:
        """Delete rows whose expiry has passed. Returns count removed."""
        async with self._session_maker() as session:
            result: Any = await session.execute(
                delete(RevokedToken).where(RevokedToken.expires_at <= self._clock())
            )
            await session.commit()
            return result.rowcount or 0

    async def _upsert(
        self, session: AsyncSession, key: str, now: datetime, expires_at: datetime
    ) -> None:
        existing = await session.get(RevokedToken, key)
        if existing is None:
            session.add(RevokedToken(token_hash=key, revoked_at=now, expires_at=expires_at))
            await session.flush()
            return
        current = existing.expires_at
        if current.tzinfo is None:
            # SQLite hands back naive datetimes
            current = current.replace(tzinfo=UTC)
        if expires_at > current:
            existing.expires_at = expires_at


class RedisRevocationStore:
    """Store backed by Redis keys with native expiry."""

    KEY_PREFIX = "auth:revoked:"

    def __init__(self, client: Any):
        self.client = client

    @classmethod
    def from_url(cls, redis_url: str, *, socket_timeout: float = 5.0) -> "RedisRevocationStore":
        import redis.asyncio as aioredis

        return cls(
            aioredis.from_url(
                redis_url,
                decode_responses=True,
                socket_timeout=socket_timeout,
                socket_connect_timeout=socket_timeout,
            )
        )

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token_fingerprint(token)}"

    async def revoke(self, token: str, ttl: timedelta) -> None:
        key = self._key(token)
        seconds = _ttl_seconds(ttl)
        try:
            created = await self.client.set(key, str(int(time.time())), ex=seconds, nx=True)
            if not created:
                # Already revoked: only ever push the expiry further out
                await self.client.expire(key, seconds, gt=True)
        except (RedisError, OSError) as e:
            logger.error(f"Failed to record token revocation in Redis: {e}")
            raise RevocationStoreUnavailableError() from e

    async def is_revoked(self, token: str) -> bool:
        try:
            return bool(await self.client.exists(self._key(token)))
        except (RedisError, OSError) as e:
            logger.error(f"Redis revocation lookup failed: {e}")
            raise RevocationStoreUnavailableError() from e

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()


def build_revocation_store(
    settings: Settings,
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> RevocationStore:
    """Construct the backend selected by ``REVOCATION_BACKEND``."""
    if settings.revocation_backend == "memory":
        logger.warning("Using in-memory revocation store; revocations are per-process")
        return MemoryRevocationStore()
    if settings.revocation_backend == "redis":
        return RedisRevocationStore.from_url(
            settings.redis_url or "", socket_timeout=settings.redis_socket_timeout
        )
    if session_maker is None:
        from football_auth.core.database import async_session_maker as session_maker
    return DatabaseRevocationStore(session_maker)


async def revocation_cleanup_loop(store: RevocationStore, interval_seconds: int) -> None:
    """Periodically evict expired entries from stores that keep them around."""
    cleanup = getattr(store, "cleanup_expired", None)
    if cleanup is None:
        return
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = cleanup()
            if asyncio.iscoroutine(removed):
                removed = await removed
            if removed > 0:
                logger.info(f"Cleaned up {removed} expired revocation entries")
        except Exception:
            logger.exception("Error cleaning up revocation entries")
