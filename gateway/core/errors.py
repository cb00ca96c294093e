"""Error vocabulary exposed by the gateway's HTTP surface.

Every failure that reaches a caller is one of these. Service layers raise
their own narrower exceptions; the dispatcher and the API layer translate
them into a ``GatewayError`` subclass, which the exception handlers in
``gateway.main`` serialize.
"""

from typing import Any


class GatewayError(Exception):
    """Base class for errors rendered to API callers."""

    error: str = "server_error"
    status_code: int = 500
    default_message: str = "An unexpected error occurred"
    # OAuth-style endpoints use "error_description", everything else "message"
    description_key: str = "message"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        details: Any = None,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.error, self.description_key: self.message}
        if self.description_key == "message":
            body["details"] = self.details
        return body


class ServerError(GatewayError):
    pass


class OAuthError(GatewayError):
    description_key = "error_description"


class InvalidRequestError(OAuthError):
    error = "invalid_request"
    status_code = 400
    default_message = "Malformed request"


class UnsupportedGrantTypeError(OAuthError):
    error = "unsupported_grant_type"
    status_code = 400


class InvalidClientError(OAuthError):
    error = "invalid_client"
    status_code = 401
    default_message = "Client authentication failed"


class InvalidGrantError(OAuthError):
    error = "invalid_grant"
    status_code = 401
    default_message = "Invalid or expired refresh token"


class UnauthorizedError(OAuthError):
    error = "unauthorized"
    status_code = 401
    default_message = "Invalid or expired access token"


class IntegrationNotFoundError(GatewayError):
    error = "integration_not_found"
    status_code = 404

    def __init__(self, integration: str, **kwargs: Any):
        super().__init__(f'Integration "{integration}" not found or disabled', **kwargs)


class EndpointNotFoundError(GatewayError):
    error = "endpoint_not_found"
    status_code = 404

    def __init__(self, integration: str, endpoint: str, **kwargs: Any):
        super().__init__(
            f'Endpoint "{endpoint}" not found in integration "{integration}"', **kwargs
        )


class WebhooksDisabledError(GatewayError):
    error = "webhooks_disabled"
    status_code = 400

    def __init__(self, integration: str, **kwargs: Any):
        super().__init__(f'Webhooks not enabled for integration "{integration}"', **kwargs)


class EventNotAllowedError(GatewayError):
    error = "event_not_allowed"
    status_code = 400

    def __init__(self, event: str, **kwargs: Any):
        super().__init__(f'Event "{event}" not allowed for this integration', **kwargs)


class InvalidSignatureError(GatewayError):
    error = "invalid_signature"
    status_code = 401
    default_message = "Webhook signature validation failed"


class TransformationError(GatewayError):
    error = "transformation_error"
    status_code = 400
    default_message = "Failed to transform request data"


class ProxyError(GatewayError):
    """Upstream call failed; carries the upstream status and body when known."""

    error = "proxy_error"
    status_code = 500
