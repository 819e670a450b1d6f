"""Mock Test Platform - API v1 Router."""
from fastapi import APIRouter

from testprep.api.v1.attempts import router as attempts_router
from testprep.api.v1.catalog import router as catalog_router

api_router = APIRouter()

api_router.include_router(catalog_router)
api_router.include_router(attempts_router)
