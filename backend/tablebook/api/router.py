"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from tablebook.api.routes import reservations, tables
from tablebook.core.config import get_settings

settings = get_settings()

api_router = APIRouter(prefix=settings.API_PREFIX)
api_router.include_router(tables.router)
api_router.include_router(reservations.router)
