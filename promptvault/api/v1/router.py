"""
API v1 router.

This module aggregates all v1 API endpoints into a single router.
"""

from fastapi import APIRouter

from .endpoints import invoke

api_router = APIRouter(prefix="/v1")

api_router.include_router(invoke.router)
