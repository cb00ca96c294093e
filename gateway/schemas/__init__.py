# Integration Gateway Pydantic Schemas
from gateway.schemas.auth import (
    MessageResponse,
    RefreshRequest,
    RevokeRequest,
    TokenRequest,
    TokenResponse,
)
from gateway.schemas.integration import (
    IntegrationAuth,
    IntegrationConfig,
    IntegrationCredentials,
    IntegrationEndpoint,
    IntegrationListResponse,
    IntegrationStatusResponse,
    IntegrationSummary,
    WebhookConfig,
    WebhookStatus,
)

__all__ = [
    "IntegrationAuth",
    "IntegrationConfig",
    "IntegrationCredentials",
    "IntegrationEndpoint",
    "IntegrationListResponse",
    "IntegrationStatusResponse",
    "IntegrationSummary",
    "MessageResponse",
    "RefreshRequest",
    "RevokeRequest",
    "TokenRequest",
    "TokenResponse",
    "WebhookConfig",
    "WebhookStatus",
]
