"""
Pydantic schemas for catalog prompts.

These schemas define payload validation for create/update/list/search and the
record shape returned to callers and written to export files.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .common import optional_text, required_text

SORT_FIELDS = ("updated_at", "created_at", "title")
SORT_ORDERS = ("asc", "desc")


class SearchMode(str, Enum):
    """Text matching strategy for prompt search."""

    FULLTEXT = "fulltext"
    CONTAINS = "contains"


class PromptCreate(BaseModel):
    """Schema for creating a new prompt."""

    title: str = Field(..., description="Prompt title")
    description: Optional[str] = Field(None, description="Short description")
    content: str = Field(..., description="Prompt text")
    tags: Optional[str] = Field(None, description="Comma-delimited tags")
    category: Optional[str] = Field(None, description="Category label")
    language: Optional[str] = Field(None, description="Language label")
    is_favorite: bool = Field(False, description="Whether this prompt is marked as favorite")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> str:
        return required_text(v, "Title is required")

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v: Any) -> str:
        return required_text(v, "Content is required")

    @field_validator("description", "tags", "category", "language", mode="before")
    @classmethod
    def clean_optional(cls, v: Any) -> Optional[str]:
        return optional_text(v)

    @field_validator("is_favorite", mode="before")
    @classmethod
    def default_favorite(cls, v: Any) -> Any:
        return False if v is None else v


class PromptUpdate(BaseModel):
    """
    Schema for updating an existing prompt.

    Only fields present in the payload are applied; use
    ``model_dump(exclude_unset=True)`` to get them.
    """

    title: Optional[str] = Field(None, description="Prompt title")
    description: Optional[str] = Field(None, description="Short description")
    content: Optional[str] = Field(None, description="Prompt text")
    tags: Optional[str] = Field(None, description="Comma-delimited tags")
    category: Optional[str] = Field(None, description="Category label")
    language: Optional[str] = Field(None, description="Language label")
    is_favorite: Optional[bool] = Field(None, description="Favorite status")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Any) -> str:
        return required_text(v, "Title cannot be empty")

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v: Any) -> str:
        return required_text(v, "Content cannot be empty")

    @field_validator("description", "tags", "category", "language", mode="before")
    @classmethod
    def clean_optional(cls, v: Any) -> Optional[str]:
        return optional_text(v)

    @field_validator("is_favorite", mode="before")
    @classmethod
    def default_favorite(cls, v: Any) -> Any:
        return False if v is None else v


class PromptResponse(BaseModel):
    """
    Schema for a prompt record.

    This is also the export projection: exactly the ten public fields, without
    the internal row id or the deletion marker.
    """

    uuid: str = Field(..., description="Unique prompt identifier")
    title: str = Field(..., description="Prompt title")
    description: Optional[str] = Field(None, description="Short description")
    content: str = Field(..., description="Prompt text")
    tags: Optional[str] = Field(None, description="Comma-delimited tags")
    category: Optional[str] = Field(None, description="Category label")
    language: Optional[str] = Field(None, description="Language label")
    is_favorite: bool = Field(False, description="Whether this prompt is marked as favorite")
    created_at: datetime = Field(..., description="Record creation timestamp")
    updated_at: datetime = Field(..., description="Record last update timestamp")

    model_config = {
        "from_attributes": True,
    }

    @field_validator("is_favorite", mode="before")
    @classmethod
    def coerce_favorite(cls, v: Any) -> Any:
        # SQLite and older exports store the flag as 0/1 or "true"/"false"
        return False if v is None else v


class PromptListParams(BaseModel):
    """Pagination and ordering for prompt listings."""

    limit: int = Field(100, ge=1, description="Maximum number of prompts to return")
    offset: int = Field(0, ge=0, description="Number of prompts to skip")
    sort: str = Field("updated_at", description="updated_at, created_at or title")
    order: str = Field("desc", description="asc or desc")

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def default_paging(cls, v: Any, info) -> Any:
        if v is None:
            return 100 if info.field_name == "limit" else 0
        return v

    @field_validator("sort", mode="before")
    @classmethod
    def fallback_sort(cls, v: Any) -> str:
        """Unrecognised sort fields fall back to updated_at."""
        return v if v in SORT_FIELDS else "updated_at"

    @field_validator("order", mode="before")
    @classmethod
    def fallback_order(cls, v: Any) -> str:
        if isinstance(v, str) and v.lower() in SORT_ORDERS:
            return v.lower()
        return "desc"


class PromptSearchParams(BaseModel):
    """Search request: free text plus optional category/tag filters."""

    query: Optional[str] = Field(None, description="Free text to match")
    category: Optional[str] = Field(None, description="Exact category filter")
    tag: Optional[str] = Field(None, description="Substring tag filter")
    limit: int = Field(100, ge=1, description="Maximum number of prompts to return")
    offset: int = Field(0, ge=0, description="Number of prompts to skip")
    mode: Optional[SearchMode] = Field(None, description="fulltext or contains; store default when omitted")

    @field_validator("query", "category", "tag", mode="before")
    @classmethod
    def clean_optional(cls, v: Any) -> Optional[str]:
        return optional_text(v)

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def default_paging(cls, v: Any, info) -> Any:
        if v is None:
            return 100 if info.field_name == "limit" else 0
        return v

    @property
    def is_empty(self) -> bool:
        """True when no text and no filter is given."""
        return not (self.query or self.category or self.tag)

    def to_list_params(self) -> PromptListParams:
        return PromptListParams(limit=self.limit, offset=self.offset)


class ImportResult(BaseModel):
    """Counters reported by a prompt import."""

    imported: int = Field(0, description="New prompts inserted")
    updated: int = Field(0, description="Existing prompts overwritten by newer data")
    skipped: int = Field(0, description="Invalid, older or failed records")
