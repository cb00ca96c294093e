"""HTTP gateway - outbound calls to configured integrations."""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Literal

import httpx

from gateway.core.config import Settings, settings
from gateway.core.logging import sanitize_headers
from gateway.core.retry import RetryConfig, retry_async
from gateway.services.integrations import IntegrationRegistry

logger = logging.getLogger(__name__)

USER_AGENT = "Integration-Gateway/1.0"

ConnectionStatus = Literal["connected", "reachable", "unreachable"]


@dataclass
class UpstreamResponse:
    status_code: int
    body: Any


class UpstreamError(Exception):
    """An outbound call failed.

    ``status_code`` and ``body`` are the upstream's when it answered, and
    None for network-level failures.
    """

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        self.message = message
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class UnknownTargetError(Exception):
    """Integration or endpoint is not in the catalog."""


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


class HttpGateway:
    """One pooled ``httpx.AsyncClient`` per integration.

    Clients are created lazily with the integration's base address, timeout
    and auth headers, and closed together by ``close()``. Network failures
    and 5xx responses are retried with exponential backoff; 4xx responses
    are returned to the caller on the first attempt.
    """

    def __init__(
        self,
        registry: IntegrationRegistry,
        transport: httpx.AsyncBaseTransport | None = None,
        config: Settings | None = None,
    ):
        self.registry = registry
        self.config = config or settings
        self._transport = transport
        self._clients: dict[str, httpx.AsyncClient] = {}
        self._client_lock = asyncio.Lock()

    async def _get_client(self, name: str) -> httpx.AsyncClient:
        integration = self.registry.resolve(name)
        if integration is None:
            raise UnknownTargetError(f'Integration "{name}" not found')

        async with self._client_lock:
            client = self._clients.get(name)
            if client is not None and not client.is_closed:
                return client

            headers = {
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
                **self.registry.build_auth_headers(name),
            }
            client = httpx.AsyncClient(
                base_url=integration.base_address,
                headers=headers,
                timeout=integration.timeout or self.config.http_timeout,
                transport=self._transport,
            )
            self._clients[name] = client
            return client

    def _retry_config(self, name: str) -> RetryConfig:
        integration = self.registry.resolve(name)
        retries = integration.retries if integration else None
        return RetryConfig.from_settings(retries, config=self.config)

    async def call_endpoint(
        self,
        name: str,
        endpoint_name: str,
        body: Any = None,
        path_params: dict[str, Any] | None = None,
    ) -> UpstreamResponse:
        """Call a configured endpoint with the method it declares.

        Raises:
            UnknownTargetError: integration or endpoint not configured
            UpstreamError: 4xx response, 5xx after retries, or network failure
        """
        endpoint = self.registry.resolve_endpoint(name, endpoint_name)
        path = self.registry.build_path(name, endpoint_name, path_params)
        if endpoint is None or path is None:
            raise UnknownTargetError(
                f'Endpoint "{endpoint_name}" not found in integration "{name}"'
            )

        client = await self._get_client(name)
        send_body = endpoint.method not in ("GET", "DELETE") and body is not None

        async def _attempt() -> httpx.Response:
            logger.debug(
                f"HTTP request {endpoint.method} {name}{path}",
                extra={"context": {"headers": sanitize_headers(client.headers)}},
            )
            response = await client.request(
                endpoint.method, path, json=body if send_body else None
            )
            if response.status_code >= 500:
                # Raised inside the attempt so the retry loop sees it
                response.raise_for_status()
            return response

        started = time.monotonic()
        try:
            response = await retry_async(
                _attempt,
                config=self._retry_config(name),
                operation=f"{name}.{endpoint_name}",
            )
        except httpx.HTTPStatusError as e:
            self._log_call(name, endpoint_name, "error", started, e.response.status_code)
            raise UpstreamError(
                f"Upstream returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                body=_decode_body(e.response),
            ) from e
        except httpx.HTTPError as e:
            self._log_call(name, endpoint_name, "error", started, None, error=str(e))
            raise UpstreamError(f"Upstream request failed: {type(e).__name__}") from e

        payload = _decode_body(response)
        if response.is_error:
            self._log_call(name, endpoint_name, "error", started, response.status_code)
            raise UpstreamError(
                f"Upstream returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=payload,
            )

        self._log_call(name, endpoint_name, "success", started, response.status_code)
        return UpstreamResponse(status_code=response.status_code, body=payload)

    def _log_call(
        self,
        name: str,
        endpoint_name: str,
        outcome: str,
        started: float,
        status_code: int | None,
        error: str | None = None,
    ) -> None:
        context: dict[str, Any] = {
            "integration": name,
            "endpoint": endpoint_name,
            "status": status_code,
            "duration_ms": round((time.monotonic() - started) * 1000, 1),
        }
        if error:
            context["error"] = error
        level = logging.INFO if outcome == "success" else logging.WARNING
        logger.log(level, f"Integration call {name}.{endpoint_name}: {outcome}", extra={"context": context})

    async def check_reachability(self, name: str) -> ConnectionStatus:
        """Single un-retried GET of the integration root."""
        try:
            client = await self._get_client(name)
            response = await client.get("/")
        except httpx.HTTPError as e:
            logger.info(f"Integration {name} unreachable: {type(e).__name__}")
            return "unreachable"
        return "connected" if response.is_success else "reachable"

    async def close(self) -> None:
        """Close every pooled client."""
        async with self._client_lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            await client.aclose()
