"""Revoked tokens, persisted until the token could no longer be accepted."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from football_auth.core.database import Base
from football_auth.models.base import utcnow


class RevokedToken(Base):
    """A revoked token identified by the SHA-256 fingerprint of its raw value.

    Rows are created on logout and removed by the cleanup task once
    ``expires_at`` has passed. Lookups ignore expired rows, so correctness
    never depends on the cleanup having run.
    """

    __tablename__ = "revoked_tokens"

    token_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    revoked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
