"""Integration Gateway router - aggregates all public routes."""

from fastapi import APIRouter

from gateway.api import auth, health, proxy, webhooks

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(webhooks.router)
api_router.include_router(proxy.router)
