# Integration Gateway Services
from gateway.services.auth import TokenPair, TokenService, hash_secret, verify_secret
from gateway.services.credential_store import CredentialStore
from gateway.services.http_gateway import HttpGateway, UpstreamError, UpstreamResponse
from gateway.services.integrations import IntegrationConfigError, IntegrationRegistry
from gateway.services.proxy import ProxyDispatcher, ProxyResult
from gateway.services.webhooks import WebhookAuthenticator, WebhookReceipt, acknowledge_webhook

__all__ = [
    "CredentialStore",
    "HttpGateway",
    "IntegrationConfigError",
    "IntegrationRegistry",
    "ProxyDispatcher",
    "ProxyResult",
    "TokenPair",
    "TokenService",
    "UpstreamError",
    "UpstreamResponse",
    "WebhookAuthenticator",
    "WebhookReceipt",
    "acknowledge_webhook",
    "hash_secret",
    "verify_secret",
]
