"""Token service: client authentication and session token lifecycle."""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jwt.exceptions import PyJWTError

from gateway.core.config import Settings, settings
from gateway.models import Client, OAuthSession
from gateway.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

TOKEN_TYPE = "Bearer"

# Argon2 secret hasher with recommended parameters
# Memory: 64 MiB, Time: 3 iterations, Parallelism: 4
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)

_dummy_hash: str | None = None


class TokenError(Exception):
    """Access token failed local verification."""


class TokenExpiredError(TokenError):
    pass


class InvalidTokenError(TokenError):
    pass


def hash_secret(secret: str) -> str:
    """Hash a client secret using Argon2id."""
    return ph.hash(secret)


def verify_secret(secret: str, secret_hash: str) -> bool:
    """Verify a secret against its hash using constant-time comparison."""
    try:
        return ph.verify(secret_hash, secret)
    except (VerificationError, InvalidHashError):
        return False


def _burn_verification(secret: str) -> None:
    """Spend the same time as a real verification for unknown clients."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_secret(secrets.token_hex(16))
    verify_secret(secret, _dummy_hash)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_at: datetime
    refresh_expires_at: datetime
    expires_in: int
    token_type: str = TOKEN_TYPE

    def to_response(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }


class TokenService:
    """Issues, validates, rotates and revokes token pairs.

    The access token is a signed JWT so that forged or expired tokens are
    rejected without touching the store. The refresh token is an opaque
    random string whose validity lives entirely in the store.
    """

    def __init__(self, store: CredentialStore, config: Settings | None = None):
        self.store = store
        self.config = config or settings

    @property
    def access_lifetime(self) -> int:
        return self.config.access_token_expire_seconds

    # --- Authentication ---

    async def authenticate(self, client_id: str, client_secret: str) -> Client | None:
        """Return the active client for valid credentials, else None.

        Unknown id, inactive client and wrong secret are indistinguishable
        to the caller.
        """
        client = await self.store.get_active_client(client_id)
        if client is None:
            _burn_verification(client_secret)
            return None
        if not verify_secret(client_secret, client.client_secret_hash):
            return None
        return client

    # --- Issuance ---

    def _encode_access_token(self, client_id: str, issued_at: datetime, expires_at: datetime) -> str:
        payload = {
            "sub": client_id,
            "type": "access",
            "jti": secrets.token_hex(16),
            "iat": issued_at,
            "exp": expires_at,
        }
        return str(
            jwt.encode(
                payload,
                self.config.effective_jwt_secret_key,
                algorithm=self.config.jwt_algorithm,
            )
        )

    def decode_access_token(self, token: str) -> dict[str, Any]:
        """Verify signature, embedded expiry and token kind."""
        try:
            payload = jwt.decode(
                token,
                self.config.effective_jwt_secret_key,
                algorithms=[self.config.jwt_algorithm],
                leeway=self.config.token_clock_skew_seconds,
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except PyJWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e
        if payload.get("type") != "access":
            raise InvalidTokenError("Not an access token")
        return payload

    def issue_token_pair(self, client: Client, access_lifetime: int | None = None) -> TokenPair:
        lifetime = self.access_lifetime if access_lifetime is None else access_lifetime
        now = datetime.now(UTC)
        expires_at = now + timedelta(seconds=lifetime)
        refresh_expires_at = now + timedelta(
            seconds=lifetime * self.config.refresh_token_lifetime_multiplier
        )
        return TokenPair(
            access_token=self._encode_access_token(client.client_id, now, expires_at),
            refresh_token=secrets.token_hex(32),
            expires_at=expires_at,
            refresh_expires_at=refresh_expires_at,
            expires_in=lifetime,
        )

    async def persist_session(self, client: Client, pair: TokenPair) -> OAuthSession:
        session = OAuthSession(
            client_pk=client.id,
            client=client,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            token_type=pair.token_type,
            expires_at=pair.expires_at,
            refresh_expires_at=pair.refresh_expires_at,
            is_revoked=False,
        )
        return await self.store.add_session(session)

    async def create_token_response(self, client_id: str, client_secret: str) -> TokenPair | None:
        """Client credentials grant: authenticate, issue and persist a pair."""
        client = await self.authenticate(client_id, client_secret)
        if client is None:
            logger.info("Client authentication failed")
            return None

        pair = self.issue_token_pair(client)
        await self.persist_session(client, pair)
        await self.store.commit()
        logger.info(f"Issued token pair for client {client.client_id}")
        return pair

    # --- Validation ---

    async def validate_access_token(self, token: str) -> OAuthSession | None:
        """Return the live session for an access token, else None.

        The JWT check rejects forged and naturally expired tokens cheaply;
        the stored row is authoritative for revocation and expiry.
        """
        try:
            self.decode_access_token(token)
        except TokenError:
            return None

        session = await self.store.get_session_by_access_token(token)
        if session is None or session.is_revoked:
            return None
        if session.expires_at <= datetime.now(UTC):
            return None
        if not session.client.is_active:
            return None
        return session

    # --- Rotation ---

    async def refresh(self, refresh_token: str) -> TokenPair | None:
        """Exchange a refresh token for a new pair; each token works once.

        The old session is revoked with a compare-and-set before the new one
        is issued, so of two concurrent calls with the same token only one
        can win.
        """
        session = await self.store.get_session_by_refresh_token(refresh_token)
        if session is None or session.is_revoked:
            return None
        if session.refresh_expires_at <= datetime.now(UTC):
            return None

        client = await self.store.get_client(session.client_pk)
        if client is None or not client.is_active:
            return None

        if not await self.store.mark_revoked(session.id):
            logger.warning(f"Refresh token replay rejected for client {client.client_id}")
            return None

        pair = self.issue_token_pair(client)
        await self.persist_session(client, pair)
        await self.store.commit()
        logger.info(f"Rotated token pair for client {client.client_id}")
        return pair

    # --- Revocation ---

    async def revoke(self, session_id: uuid.UUID) -> None:
        if await self.store.mark_revoked(session_id):
            logger.info(f"Revoked session {session_id}")
        await self.store.commit()

    async def revoke_all_for_client(self, client_pk: uuid.UUID) -> int:
        count = await self.store.revoke_all_for_client(client_pk)
        await self.store.commit()
        if count:
            logger.info(f"Revoked {count} sessions for client {client_pk}")
        return count

    async def revoke_token(self, token: str) -> None:
        """Revoke the session owning an access or refresh token, if any."""
        session = await self.validate_access_token(token)
        if session is None:
            session = await self.store.get_session_by_refresh_token(token)
        if session is not None:
            await self.revoke(session.id)

    # --- Maintenance ---

    async def sweep_expired(self) -> int:
        """Delete sessions whose access expiry has passed, revoked or not."""
        removed = await self.store.delete_sessions_expired_before(datetime.now(UTC))
        await self.store.commit()
        return removed
