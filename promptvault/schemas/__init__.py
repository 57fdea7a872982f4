"""
Pydantic schemas for PromptVault payloads and records.
"""

from .common import ReorderItem, ReorderItemsPayload, coerce_payload
from .envelope import ApiError, ApiResponse, FacadeRequest
from .management import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    GroupCreate,
    GroupResponse,
    GroupUpdate,
    ManagementPromptCreate,
    ManagementPromptResponse,
    ManagementPromptUpdate,
    PromptResultCreate,
    PromptResultResponse,
    PromptResultUpdate,
    RenderedPrompt,
)
from .migration import MigrationResult
from .prompt import (
    ImportResult,
    PromptCreate,
    PromptListParams,
    PromptResponse,
    PromptSearchParams,
    PromptUpdate,
    SearchMode,
)

__all__ = [
    "ApiError",
    "ApiResponse",
    "CategoryCreate",
    "CategoryResponse",
    "CategoryUpdate",
    "FacadeRequest",
    "GroupCreate",
    "GroupResponse",
    "GroupUpdate",
    "ImportResult",
    "ManagementPromptCreate",
    "ManagementPromptResponse",
    "ManagementPromptUpdate",
    "MigrationResult",
    "PromptCreate",
    "PromptListParams",
    "PromptResponse",
    "PromptResultCreate",
    "PromptResultResponse",
    "PromptResultUpdate",
    "PromptSearchParams",
    "PromptUpdate",
    "RenderedPrompt",
    "ReorderItem",
    "ReorderItemsPayload",
    "SearchMode",
    "coerce_payload",
]
