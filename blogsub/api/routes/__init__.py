"""Top level API router registration."""
from fastapi import APIRouter, FastAPI

from blogsub.api.routes import admin, auth, health, transactions


def register_routes(application: FastAPI) -> None:
    """Register all API routers with the FastAPI application."""
    api_router = APIRouter(prefix="/api")

    api_router.include_router(health.router, tags=["health"])
    api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
    api_router.include_router(transactions.router, tags=["transactions"])
    api_router.include_router(admin.router, tags=["admin"])

    application.include_router(api_router)


__all__ = ["register_routes"]
