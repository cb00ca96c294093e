"""Pydantic schemas for the integration catalog and proxy responses."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
AuthType = Literal["none", "basic", "bearer", "api_key", "oauth2"]


class IntegrationCredentials(BaseModel):
    """Kind-specific credential fields; unused ones stay None."""

    model_config = ConfigDict(populate_by_name=True)

    username: str | None = None
    password: str | None = None
    token: str | None = None
    api_key: str | None = Field(default=None, alias="apiKey")
    api_key_header: str = Field(default="X-API-Key", alias="apiKeyHeader")
    client_id: str | None = Field(default=None, alias="clientId")
    client_secret: str | None = Field(default=None, alias="clientSecret")


class IntegrationAuth(BaseModel):
    type: AuthType = "none"
    credentials: IntegrationCredentials = Field(default_factory=IntegrationCredentials)
    headers: dict[str, str] = Field(default_factory=dict)


class IntegrationEndpoint(BaseModel):
    path: str
    method: HttpMethod = "GET"
    transformer: str | None = None

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @field_validator("path")
    @classmethod
    def leading_slash(cls, v: str) -> str:
        return v if v.startswith("/") else f"/{v}"


class WebhookConfig(BaseModel):
    enabled: bool = False
    secret: str | None = None
    # None means every event is accepted
    events: list[str] | None = None


class IntegrationConfig(BaseModel):
    """One external system; immutable once the catalog is loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    enabled: bool = True
    base_url: HttpUrl = Field(alias="baseUrl")
    auth: IntegrationAuth = Field(default_factory=IntegrationAuth)
    endpoints: dict[str, IntegrationEndpoint] = Field(default_factory=dict)
    # Seconds; falls back to HTTP_TIMEOUT when unset
    timeout: float | None = Field(default=None, gt=0)
    # Attempts beyond the first; falls back to HTTP_MAX_RETRIES when unset
    retries: int | None = Field(default=None, ge=0)
    webhooks: WebhookConfig | None = None

    @property
    def base_address(self) -> str:
        return str(self.base_url).rstrip("/")

    @property
    def webhooks_enabled(self) -> bool:
        return bool(self.webhooks and self.webhooks.enabled)


class IntegrationSummary(BaseModel):
    name: str
    display_name: str
    base_url: str
    endpoints: list[str]
    webhooks_enabled: bool


class IntegrationListResponse(BaseModel):
    count: int
    integrations: list[IntegrationSummary]


class WebhookStatus(BaseModel):
    enabled: bool
    events: list[str]


class IntegrationStatusResponse(BaseModel):
    integration: str
    name: str
    enabled: bool
    base_url: str
    connection_status: Literal["connected", "reachable", "unreachable"]
    endpoints: list[str]
    webhooks: WebhookStatus
