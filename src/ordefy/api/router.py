"""Master API router mounted at /api."""

from fastapi import APIRouter

from ordefy.api.routes import health, shopify_webhooks, webhook_queue_admin

api_router = APIRouter(prefix="/api")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(shopify_webhooks.router)
api_router.include_router(webhook_queue_admin.router)
