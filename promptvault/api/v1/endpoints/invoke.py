"""
Request facade endpoints.

A single dispatch route carries every catalog operation; the response is
always the result envelope with HTTP 200, errors included.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....core.deps import get_facade
from ....schemas.envelope import FacadeRequest
from ....services.request_facade import RequestFacade

logger = logging.getLogger(__name__)

router = APIRouter(tags=["invoke"])


@router.post("/invoke")
async def invoke_operation(
    request: FacadeRequest,
    facade: RequestFacade = Depends(get_facade),
) -> Dict[str, Any]:
    """
    Run one operation.

    Args:
        request: Operation name and arguments
        facade: Request facade

    Returns:
        ``{"success": true, "data": ...}`` or
        ``{"success": false, "error": {"code": ..., "message": ...}}``
    """
    response = await facade.handle(request)
    return response.to_payload()


@router.get("/operations")
async def list_operations(facade: RequestFacade = Depends(get_facade)) -> Dict[str, Any]:
    """Names of all supported operations."""
    return {"operations": facade.operations}
