"""Pydantic schemas for the token API.

Request fields are optional so that missing values are reported as an
OAuth ``invalid_request`` by the route rather than as a validation error.
"""

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    """Client credentials grant."""

    client_id: str | None = None
    client_secret: str | None = None
    grant_type: str | None = None


class RefreshRequest(BaseModel):
    """Refresh token grant."""

    refresh_token: str | None = None
    grant_type: str | None = None


class RevokeRequest(BaseModel):
    """Access or refresh token to revoke."""

    token: str | None = None


class TokenResponse(BaseModel):
    """Response with an access/refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(description="Access token expiry in seconds")


class MessageResponse(BaseModel):
    message: str
