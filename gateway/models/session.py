"""Token session model - one row per issued token pair."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gateway.models.base import BaseModel, UTCDateTime
from gateway.models.client import Client


class OAuthSession(BaseModel):
    """Binds an access/refresh token pair to a client.

    Rows are immutable apart from ``is_revoked``, which only ever moves from
    false to true. Expired rows are deleted by the session sweep whether or
    not they were revoked.
    """

    __tablename__ = "sessions"

    client_pk: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    access_token: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)
    refresh_token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    token_type: Mapped[str] = mapped_column(String(32), nullable=False, default="Bearer")
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    refresh_expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    client: Mapped[Client] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<OAuthSession {self.id} client={self.client_pk} revoked={self.is_revoked}>"
