"""Master API router: includes all sub-routers."""

from fastapi import APIRouter

from .routes.language_server import router as language_server_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(language_server_router)
