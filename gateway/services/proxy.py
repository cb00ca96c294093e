"""Proxy dispatcher - one forwarded call from resolution to relayed response."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from gateway.core.errors import (
    EndpointNotFoundError,
    IntegrationNotFoundError,
    ProxyError,
    TransformationError,
)
from gateway.services.http_gateway import HttpGateway, UnknownTargetError, UpstreamError
from gateway.services.integrations import IntegrationRegistry
from gateway.transformers import TransformerError, TransformerRegistry

logger = logging.getLogger(__name__)


@dataclass
class ProxyResult:
    status_code: int
    body: Any


class ProxyDispatcher:
    """Resolve, optionally transform, call, and map failures.

    Every failure surfaces as a ``GatewayError``. Transformation failures
    abort before any network I/O.
    """

    def __init__(
        self,
        integrations: IntegrationRegistry,
        transformers: TransformerRegistry,
        gateway: HttpGateway,
    ):
        self.integrations = integrations
        self.transformers = transformers
        self.gateway = gateway

    async def forward(
        self,
        integration: str,
        endpoint: str,
        body: Any = None,
        query: Mapping[str, str] | None = None,
        client_id: str | None = None,
    ) -> ProxyResult:
        """Forward one call; query parameters fill the endpoint's path template."""
        if not self.integrations.is_enabled(integration):
            raise IntegrationNotFoundError(integration)

        endpoint_config = self.integrations.resolve_endpoint(integration, endpoint)
        if endpoint_config is None:
            raise EndpointNotFoundError(integration, endpoint)

        request_data = body
        if endpoint_config.transformer and body is not None:
            try:
                request_data = self.transformers.execute(endpoint_config.transformer, body)
            except TransformerError as e:
                logger.warning(
                    f"Request transformation failed for {integration}.{endpoint}: {e}",
                    extra={
                        "context": {
                            "integration": integration,
                            "endpoint": endpoint,
                            "transformer": endpoint_config.transformer,
                            "client_id": client_id,
                        }
                    },
                )
                raise TransformationError(details=str(e)) from e

        try:
            response = await self.gateway.call_endpoint(
                integration, endpoint, request_data, dict(query or {})
            )
        except UnknownTargetError as e:
            raise EndpointNotFoundError(integration, endpoint) from e
        except UpstreamError as e:
            logger.warning(
                f"Proxy call {integration}.{endpoint} failed: {e.message}",
                extra={
                    "context": {
                        "integration": integration,
                        "endpoint": endpoint,
                        "status": e.status_code,
                        "client_id": client_id,
                    }
                },
            )
            raise ProxyError(e.message, status_code=e.status_code or 500, details=e.body) from e

        logger.info(
            f"Proxy call {integration}.{endpoint} -> {response.status_code}",
            extra={
                "context": {
                    "integration": integration,
                    "endpoint": endpoint,
                    "status": response.status_code,
                    "client_id": client_id,
                }
            },
        )
        return ProxyResult(status_code=response.status_code, body=response.body)
