"""Proxy endpoints: integration listing, status, and request forwarding."""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from gateway.api.deps import (
    get_current_session,
    get_http_gateway,
    get_integration_registry,
    get_proxy_dispatcher,
)
from gateway.core.errors import IntegrationNotFoundError, InvalidRequestError
from gateway.models import OAuthSession
from gateway.schemas.integration import (
    IntegrationListResponse,
    IntegrationStatusResponse,
    IntegrationSummary,
    WebhookStatus,
)
from gateway.services.http_gateway import HttpGateway
from gateway.services.integrations import IntegrationRegistry
from gateway.services.proxy import ProxyDispatcher

router = APIRouter(prefix="/proxy", tags=["proxy"])


@router.get("/integrations", response_model=IntegrationListResponse)
async def list_integrations(
    registry: IntegrationRegistry = Depends(get_integration_registry),
) -> IntegrationListResponse:
    """List enabled integrations. Public."""
    summaries = []
    for name in registry.list_enabled():
        config = registry.resolve(name)
        if config is None:
            continue
        summaries.append(
            IntegrationSummary(
                name=name,
                display_name=config.name,
                base_url=config.base_address,
                endpoints=list(config.endpoints),
                webhooks_enabled=config.webhooks_enabled,
            )
        )
    return IntegrationListResponse(count=len(summaries), integrations=summaries)


@router.get("/{integration}/status", response_model=IntegrationStatusResponse)
async def integration_status(
    integration: str,
    registry: IntegrationRegistry = Depends(get_integration_registry),
    gateway: HttpGateway = Depends(get_http_gateway),
    _session: OAuthSession = Depends(get_current_session),
) -> IntegrationStatusResponse:
    """Report reachability and configured endpoints of one integration."""
    config = registry.resolve(integration)
    if config is None:
        raise IntegrationNotFoundError(integration)

    connection_status = await gateway.check_reachability(integration)
    return IntegrationStatusResponse(
        integration=integration,
        name=config.name,
        enabled=config.enabled,
        base_url=config.base_address,
        connection_status=connection_status,
        endpoints=list(config.endpoints),
        webhooks=WebhookStatus(
            enabled=config.webhooks_enabled,
            events=list(config.webhooks.events or []) if config.webhooks else [],
        ),
    )


async def _read_json_body(request: Request) -> Any:
    raw_body = await request.body()
    if not raw_body:
        return None
    try:
        return json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequestError("Request body must be valid JSON") from e


@router.api_route(
    "/{integration}/{endpoint}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
)
async def forward(
    integration: str,
    endpoint: str,
    request: Request,
    dispatcher: ProxyDispatcher = Depends(get_proxy_dispatcher),
    session: OAuthSession = Depends(get_current_session),
) -> Response:
    """Forward an authenticated call; query parameters fill path placeholders."""
    body = await _read_json_body(request)
    result = await dispatcher.forward(
        integration,
        endpoint,
        body=body,
        query=dict(request.query_params),
        client_id=session.client.client_id,
    )
    if result.body is None:
        return Response(status_code=result.status_code)
    return JSONResponse(status_code=result.status_code, content=result.body)
