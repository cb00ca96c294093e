"""Inbound webhook endpoints."""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request

from gateway.api.deps import get_webhook_authenticator
from gateway.core.errors import InvalidRequestError
from gateway.services.webhooks import WebhookAuthenticator

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _parse_payload(raw_body: bytes) -> Any:
    if not raw_body:
        return {}
    try:
        return json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidRequestError("Webhook body must be valid JSON") from e


@router.post("/{integration}")
async def receive_webhook(
    integration: str,
    request: Request,
    authenticator: WebhookAuthenticator = Depends(get_webhook_authenticator),
) -> dict[str, Any]:
    """Generic receiver; the event name is taken from the payload's ``event`` field."""
    raw_body = await request.body()
    payload = _parse_payload(raw_body)
    event = payload.get("event") if isinstance(payload, dict) else None

    receipt = await authenticator.receive(
        integration,
        str(event or "unknown"),
        request.headers,
        raw_body,
        payload,
    )
    return {
        "success": True,
        "message": "Webhook received and processed",
        "data": receipt.data,
    }


@router.post("/{integration}/{event}")
async def receive_event_webhook(
    integration: str,
    event: str,
    request: Request,
    authenticator: WebhookAuthenticator = Depends(get_webhook_authenticator),
) -> dict[str, Any]:
    """Event-scoped receiver; enforces the integration's event allow-list."""
    raw_body = await request.body()
    payload = _parse_payload(raw_body)

    receipt = await authenticator.receive(
        integration,
        event,
        request.headers,
        raw_body,
        payload,
        event_scoped=True,
    )
    return {"success": True, "event": event, "data": receipt.data}
