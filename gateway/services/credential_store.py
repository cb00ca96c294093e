"""Credential store - persistence for clients and token sessions."""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.models import Client, OAuthSession

logger = logging.getLogger(__name__)


class CredentialStore:
    """Clients and sessions backed by an async SQLAlchemy session.

    Writes are single statements so that the database serializes them;
    revocation is a compare-and-set on ``is_revoked`` so that concurrent
    callers can tell which one actually performed the transition.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def commit(self) -> None:
        await self.db.commit()

    # --- Clients ---

    async def get_client(self, client_pk: uuid.UUID) -> Client | None:
        result = await self.db.execute(select(Client).where(Client.id == client_pk))
        return result.scalar_one_or_none()

    async def get_client_by_client_id(self, client_id: str) -> Client | None:
        result = await self.db.execute(select(Client).where(Client.client_id == client_id))
        return result.scalar_one_or_none()

    async def get_active_client(self, client_id: str) -> Client | None:
        result = await self.db.execute(
            select(Client).where(Client.client_id == client_id, Client.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def create_client(
        self,
        client_id: str,
        client_secret_hash: str,
        name: str,
        description: str | None = None,
    ) -> Client:
        client = Client(
            client_id=client_id,
            client_secret_hash=client_secret_hash,
            name=name,
            description=description,
            is_active=True,
        )
        self.db.add(client)
        await self.db.flush()
        await self.db.refresh(client)
        return client

    async def list_clients(self) -> list[tuple[Client, int]]:
        """All clients with their count of non-revoked sessions."""
        active_sessions = (
            select(OAuthSession.client_pk, func.count(OAuthSession.id).label("session_count"))
            .where(OAuthSession.is_revoked.is_(False))
            .group_by(OAuthSession.client_pk)
            .subquery()
        )
        result = await self.db.execute(
            select(Client, func.coalesce(active_sessions.c.session_count, 0))
            .outerjoin(active_sessions, active_sessions.c.client_pk == Client.id)
            .order_by(Client.created_at)
        )
        return [(client, count) for client, count in result.all()]

    async def set_client_active(self, client_id: str, active: bool) -> Client | None:
        client = await self.get_client_by_client_id(client_id)
        if client is None:
            return None
        client.is_active = active
        await self.db.flush()
        return client

    # --- Sessions ---

    async def add_session(self, session: OAuthSession) -> OAuthSession:
        self.db.add(session)
        await self.db.flush()
        return session

    async def get_session_by_access_token(self, access_token: str) -> OAuthSession | None:
        result = await self.db.execute(
            select(OAuthSession)
            .where(OAuthSession.access_token == access_token)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_session_by_refresh_token(self, refresh_token: str) -> OAuthSession | None:
        result = await self.db.execute(
            select(OAuthSession)
            .where(OAuthSession.refresh_token == refresh_token)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def mark_revoked(self, session_id: uuid.UUID) -> bool:
        """Revoke one session. Returns True only for the caller that flipped the flag."""
        result: CursorResult[Any] = await self.db.execute(  # type: ignore[assignment]
            update(OAuthSession)
            .where(OAuthSession.id == session_id, OAuthSession.is_revoked.is_(False))
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def revoke_all_for_client(self, client_pk: uuid.UUID) -> int:
        result: CursorResult[Any] = await self.db.execute(  # type: ignore[assignment]
            update(OAuthSession)
            .where(OAuthSession.client_pk == client_pk, OAuthSession.is_revoked.is_(False))
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def delete_sessions_expired_before(self, cutoff: datetime) -> int:
        result: CursorResult[Any] = await self.db.execute(  # type: ignore[assignment]
            delete(OAuthSession)
            .where(OAuthSession.expires_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
