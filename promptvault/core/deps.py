"""
FastAPI dependencies.

This module provides dependency injection functions for FastAPI routes.
"""

from fastapi import Request

from ..services.request_facade import RequestFacade


def get_facade(request: Request) -> RequestFacade:
    """
    Dependency that provides the request facade built at application startup.

    Usage:
        @router.post("/invoke")
        async def invoke(facade: RequestFacade = Depends(get_facade)):
            ...
    """
    return request.app.state.facade
