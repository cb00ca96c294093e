"""Token endpoints: client credentials, refresh and revoke."""

import logging

from fastapi import APIRouter, Depends

from gateway.api.deps import get_token_service
from gateway.core.errors import (
    InvalidClientError,
    InvalidGrantError,
    InvalidRequestError,
    UnsupportedGrantTypeError,
)
from gateway.schemas.auth import (
    MessageResponse,
    RefreshRequest,
    RevokeRequest,
    TokenRequest,
    TokenResponse,
)
from gateway.services.auth import TokenService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/token", response_model=TokenResponse)
async def issue_token(
    data: TokenRequest | None = None,
    token_service: TokenService = Depends(get_token_service),
) -> TokenResponse:
    """Client credentials grant."""
    data = data or TokenRequest()
    if not data.client_id or not data.client_secret or not data.grant_type:
        raise InvalidRequestError(
            "Missing required parameters: client_id, client_secret, grant_type"
        )
    if data.grant_type != "client_credentials":
        raise UnsupportedGrantTypeError("Only client_credentials grant type is supported")

    pair = await token_service.create_token_response(data.client_id, data.client_secret)
    if pair is None:
        raise InvalidClientError()
    return TokenResponse(**pair.to_response())


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    data: RefreshRequest | None = None,
    token_service: TokenService = Depends(get_token_service),
) -> TokenResponse:
    """Exchange a refresh token for a new pair. Each refresh token works once."""
    data = data or RefreshRequest()
    if not data.refresh_token or not data.grant_type:
        raise InvalidRequestError("Missing required parameters: refresh_token, grant_type")
    if data.grant_type != "refresh_token":
        raise UnsupportedGrantTypeError("Only refresh_token grant type is supported")

    pair = await token_service.refresh(data.refresh_token)
    if pair is None:
        raise InvalidGrantError()
    return TokenResponse(**pair.to_response())


@router.post("/revoke", response_model=MessageResponse)
async def revoke_token(
    data: RevokeRequest | None = None,
    token_service: TokenService = Depends(get_token_service),
) -> MessageResponse:
    """Revoke an access or refresh token.

    Always succeeds for a well-formed request so that callers cannot probe
    whether a token exists.
    """
    data = data or RevokeRequest()
    if not data.token:
        raise InvalidRequestError("Missing required parameter: token")

    await token_service.revoke_token(data.token)
    return MessageResponse(message="Token revoked successfully")
