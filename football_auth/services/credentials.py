"""Credential store: persisted identities the token subsystem reads from."""

import logging
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from football_auth.core.errors import ConflictError
from football_auth.models.user import User, UserRole

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True)
class Principal:
    """Identity resolved from stored credentials."""

    id: str
    name: str
    email: str
    role: str
    is_active: bool
    is_verified: bool
    password_hash: str = field(repr=False, default="")

    def public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
            "is_verified": self.is_verified,
        }


@dataclass(frozen=True)
class NewPrincipal:
    name: str
    email: str
    password_hash: str = field(repr=False)
    role: str = UserRole.user.value
    is_active: bool = True
    is_verified: bool = False


class CredentialStore(Protocol):
    async def find_by_email(self, email: str) -> Principal | None: ...

    async def find_by_id(self, principal_id: str) -> Principal | None: ...

    async def create(self, identity: NewPrincipal) -> Principal: ...

    async def update_active_flag(self, principal_id: str, is_active: bool) -> Principal | None: ...

    async def list_principals(self, limit: int = 100, offset: int = 0) -> list[Principal]: ...


def _to_principal(user: User) -> Principal:
    return Principal(
        id=str(user.id),
        name=user.name,
        email=user.email,
        role=user.role,
        is_active=user.is_active,
        is_verified=user.is_verified,
        password_hash=user.password_hash,
    )


def _parse_id(principal_id: str) -> UUID | None:
    try:
        return UUID(str(principal_id))
    except ValueError:
        return None


class SqlCredentialStore:
    """Credential store backed by the ``users`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_email(self, email: str) -> Principal | None:
        result = await self.session.execute(
            select(User).where(User.email == normalize_email(email))
        )
        user = result.scalar_one_or_none()
        return _to_principal(user) if user else None

    async def find_by_id(self, principal_id: str) -> Principal | None:
        user = await self._get(principal_id)
        return _to_principal(user) if user else None

    async def create(self, identity: NewPrincipal) -> Principal:
        user = User(
            name=identity.name,
            email=normalize_email(identity.email),
            password_hash=identity.password_hash,
            role=identity.role,
            is_active=identity.is_active,
            is_verified=identity.is_verified,
        )
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError() from e
        await self.session.commit()
        await self.session.refresh(user)
        return _to_principal(user)

    async def update_active_flag(self, principal_id: str, is_active: bool) -> Principal | None:
        user = await self._get(principal_id)
        if user is None:
            return None
        user.is_active = is_active
        await self.session.commit()
        await self.session.refresh(user)
        logger.info(f"User {user.id} active flag set to {is_active}")
        return _to_principal(user)

    async def list_principals(self, limit: int = 100, offset: int = 0) -> list[Principal]:
        result = await self.session.execute(
            select(User).order_by(User.created_at, User.email).limit(limit).offset(offset)
        )
        return [_to_principal(user) for user in result.scalars().all()]

    async def _get(self, principal_id: str) -> User | None:
        parsed = _parse_id(principal_id)
        if parsed is None:
            return None
        result = await self.session.execute(select(User).where(User.id == parsed))
        return result.scalar_one_or_none()
