"""Shared FastAPI dependencies."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gateway.core import get_db
from gateway.core.errors import UnauthorizedError
from gateway.models import OAuthSession
from gateway.services.auth import TokenService
from gateway.services.credential_store import CredentialStore
from gateway.services.http_gateway import HttpGateway
from gateway.services.integrations import IntegrationRegistry
from gateway.services.proxy import ProxyDispatcher
from gateway.services.webhooks import WebhookAuthenticator


def get_token_service(db: AsyncSession = Depends(get_db)) -> TokenService:
    """Dependency to get the token service for this request's session."""
    return TokenService(CredentialStore(db))


def get_integration_registry(request: Request) -> IntegrationRegistry:
    return request.app.state.integrations


def get_proxy_dispatcher(request: Request) -> ProxyDispatcher:
    return request.app.state.proxy


def get_webhook_authenticator(request: Request) -> WebhookAuthenticator:
    return request.app.state.webhooks


def get_http_gateway(request: Request) -> HttpGateway:
    return request.app.state.http_gateway


async def get_current_session(
    request: Request,
    token_service: TokenService = Depends(get_token_service),
) -> OAuthSession:
    """Resolve the bearer token on the request to a live session."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise UnauthorizedError("No authorization header provided")

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise UnauthorizedError(
            "Invalid authorization header format. Expected: Bearer <token>"
        )

    session = await token_service.validate_access_token(parts[1])
    if session is None:
        raise UnauthorizedError()

    request.state.client_id = session.client.client_id
    return session
