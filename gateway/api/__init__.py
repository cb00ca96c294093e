# Integration Gateway API
from gateway.api.router import api_router

__all__ = ["api_router"]
