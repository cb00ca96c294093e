"""Integration registry: the catalog of external systems the gateway talks to."""

import base64
import hashlib
import hmac
import json
import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from gateway.core.config import Settings
from gateway.schemas.integration import IntegrationConfig, IntegrationEndpoint

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


class IntegrationConfigError(Exception):
    """The integration catalog could not be loaded."""


ENV_REF_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def _expand_env(value: Any) -> Any:
    """Substitute ``${NAME}`` and ``${NAME:-default}`` in every string of a config tree.

    Unset variables without a default become empty strings.
    """
    if isinstance(value, str):
        return ENV_REF_RE.sub(lambda m: os.environ.get(m.group(1), m.group(2) or ""), value)
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    return value


def compute_signature(secret: str, payload: bytes) -> str:
    """Hex HMAC-SHA256 of a payload."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


class IntegrationRegistry:
    """Named integrations loaded once at startup.

    Instances are constructed explicitly and handed to the components that
    need them; there is no process-wide catalog.
    """

    def __init__(self, integrations: Mapping[str, IntegrationConfig] | None = None):
        self._integrations: dict[str, IntegrationConfig] = dict(integrations or {})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IntegrationRegistry":
        """Build from a mapping of integration key -> raw config."""
        integrations = {}
        for key, raw in data.items():
            try:
                integrations[key] = IntegrationConfig.model_validate(_expand_env(raw))
            except ValidationError as e:
                raise IntegrationConfigError(f"Invalid configuration for integration '{key}': {e}") from e
        return cls(integrations)

    @classmethod
    def from_settings(cls, config: Settings) -> "IntegrationRegistry":
        """Load from INTEGRATIONS_FILE, else INTEGRATIONS_JSON, else empty."""
        if config.integrations_file:
            path = Path(config.integrations_file)
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                raise IntegrationConfigError(f"Cannot read integrations file {path}: {e}") from e
        elif config.integrations_json:
            try:
                data = json.loads(config.integrations_json)
            except json.JSONDecodeError as e:
                raise IntegrationConfigError(f"INTEGRATIONS_JSON is not valid JSON: {e}") from e
        else:
            logger.warning("No integrations configured (set INTEGRATIONS_FILE or INTEGRATIONS_JSON)")
            return cls()

        if not isinstance(data, dict):
            raise IntegrationConfigError("Integration catalog must be a JSON object")
        registry = cls.from_dict(data)
        logger.info(
            f"Loaded {len(registry)} integrations ({len(registry.list_enabled())} enabled)"
        )
        return registry

    def __len__(self) -> int:
        return len(self._integrations)

    def __contains__(self, name: object) -> bool:
        return name in self._integrations

    # --- Lookup ---

    def resolve(self, name: str) -> IntegrationConfig | None:
        return self._integrations.get(name)

    def is_enabled(self, name: str) -> bool:
        integration = self.resolve(name)
        return bool(integration and integration.enabled)

    def resolve_endpoint(self, name: str, endpoint_name: str) -> IntegrationEndpoint | None:
        integration = self.resolve(name)
        if integration is None:
            return None
        return integration.endpoints.get(endpoint_name)

    def list_enabled(self) -> list[str]:
        return [name for name, config in self._integrations.items() if config.enabled]

    def list_webhook_enabled(self) -> list[str]:
        return [
            name
            for name, config in self._integrations.items()
            if config.enabled and config.webhooks_enabled
        ]

    # --- URL and header synthesis ---

    def build_path(
        self, name: str, endpoint_name: str, path_params: Mapping[str, Any] | None = None
    ) -> str | None:
        """Endpoint path with ``{key}`` placeholders replaced by URL-encoded values."""
        endpoint = self.resolve_endpoint(name, endpoint_name)
        if endpoint is None:
            return None
        path = endpoint.path
        for key, value in (path_params or {}).items():
            path = path.replace(f"{{{key}}}", quote(str(value), safe=""))
        return path

    def build_url(
        self, name: str, endpoint_name: str, path_params: Mapping[str, Any] | None = None
    ) -> str | None:
        """Absolute endpoint address, or None for an unknown integration/endpoint."""
        integration = self.resolve(name)
        path = self.build_path(name, endpoint_name, path_params)
        if integration is None or path is None:
            return None
        return f"{integration.base_address}{path}"

    def build_auth_headers(self, name: str) -> dict[str, str]:
        """Headers carrying the integration's credentials.

        Static headers from the config come first and are never overridden
        by synthesized ones. ``none`` and ``oauth2`` contribute static
        headers only.
        """
        integration = self.resolve(name)
        if integration is None:
            return {}

        auth = integration.auth
        creds = auth.credentials
        headers = dict(auth.headers)
        present = {key.lower() for key in headers}

        def _set(header: str, value: str) -> None:
            if header.lower() not in present:
                headers[header] = value

        if auth.type == "bearer" and creds.token:
            _set("Authorization", f"Bearer {creds.token}")
        elif auth.type == "basic" and creds.username and creds.password:
            encoded = base64.b64encode(f"{creds.username}:{creds.password}".encode()).decode("ascii")
            _set("Authorization", f"Basic {encoded}")
        elif auth.type == "api_key" and creds.api_key:
            _set(creds.api_key_header, creds.api_key)

        return headers

    # --- Webhook signatures ---

    def verify_webhook_signature(self, name: str, payload: bytes, signature: str) -> bool:
        """Constant-time check of a hex HMAC-SHA256 signature over the raw payload.

        Returns False (never raises) when the integration has no secret.
        """
        integration = self.resolve(name)
        secret = integration.webhooks.secret if integration and integration.webhooks else None
        if not secret or not signature:
            return False

        provided = signature.strip()
        if provided.lower().startswith(SIGNATURE_PREFIX):
            provided = provided[len(SIGNATURE_PREFIX) :]
        expected = compute_signature(secret, payload)
        return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))
