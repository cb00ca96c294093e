"""Webhook authenticator - inbound signature verification and event filtering."""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from gateway.core.config import Settings, settings
from gateway.core.errors import (
    EventNotAllowedError,
    IntegrationNotFoundError,
    InvalidSignatureError,
    WebhooksDisabledError,
)
from gateway.core.logging import sanitize_headers
from gateway.services.integrations import IntegrationRegistry

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-webhook-signature"

WebhookProcessor = Callable[[str, str, Any], Awaitable[dict[str, Any]]]


async def acknowledge_webhook(integration: str, event: str, payload: Any) -> dict[str, Any]:
    """Default processor: log the payload's field names and acknowledge."""
    logger.info(
        f"Processing webhook {integration}/{event}",
        extra={
            "context": {
                "integration": integration,
                "event": event,
                "payload_fields": sorted(payload) if isinstance(payload, dict) else [],
            }
        },
    )
    return {
        "processed": True,
        "timestamp": datetime.now(UTC).isoformat(),
        "event": event,
        "integration": integration,
    }


@dataclass
class WebhookReceipt:
    integration: str
    event: str
    data: dict[str, Any]


class WebhookAuthenticator:
    """Authenticates a webhook, then hands it to the processor.

    Checks run in order: integration known and enabled, webhooks enabled,
    signature, then (for event-scoped routes) the event allow-list.
    """

    def __init__(
        self,
        registry: IntegrationRegistry,
        processor: WebhookProcessor | None = None,
        config: Settings | None = None,
    ):
        self.registry = registry
        self.processor = processor or acknowledge_webhook
        self.config = config or settings

    def _check_signature(self, name: str, headers: Mapping[str, str], raw_body: bytes) -> None:
        integration = self.registry.resolve(name)
        secret = integration.webhooks.secret if integration and integration.webhooks else None
        if not secret:
            return

        signature = next(
            (value for key, value in headers.items() if key.lower() == SIGNATURE_HEADER), None
        )
        if not signature:
            if self.config.webhook_require_signature:
                logger.warning(f"Unsigned webhook rejected for {name}")
                raise InvalidSignatureError("Missing webhook signature")
            logger.warning(f"Unsigned webhook accepted for {name}")
            return

        if not self.registry.verify_webhook_signature(name, raw_body, signature):
            logger.warning(f"Webhook signature mismatch for {name}")
            raise InvalidSignatureError()

    async def receive(
        self,
        name: str,
        event: str,
        headers: Mapping[str, str],
        raw_body: bytes,
        payload: Any,
        event_scoped: bool = False,
    ) -> WebhookReceipt:
        """Authenticate and process one webhook.

        ``raw_body`` is what the signature covers; ``payload`` is its parsed
        form handed to the processor.
        """
        if not self.registry.is_enabled(name):
            raise IntegrationNotFoundError(name)

        integration = self.registry.resolve(name)
        if integration is None or not integration.webhooks_enabled:
            raise WebhooksDisabledError(name)

        self._check_signature(name, headers, raw_body)

        allowed = integration.webhooks.events if integration.webhooks else None
        if event_scoped and allowed is not None and event not in allowed:
            raise EventNotAllowedError(event)

        logger.info(
            f"Webhook received {name}/{event}",
            extra={
                "context": {
                    "integration": name,
                    "event": event,
                    "payload_fields": sorted(payload) if isinstance(payload, dict) else [],
                    "headers": sanitize_headers(headers),
                }
            },
        )
        data = await self.processor(name, event, payload)
        return WebhookReceipt(integration=name, event=event, data=data)
