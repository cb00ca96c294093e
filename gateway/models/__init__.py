# Integration Gateway Models
from gateway.models.base import BaseModel
from gateway.models.client import Client
from gateway.models.session import OAuthSession

__all__ = [
    "BaseModel",
    "Client",
    "OAuthSession",
]
