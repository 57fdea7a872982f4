"""
Pydantic schemas for the management hierarchy.

Categories own groups, groups own management prompts, management prompts own
results. Parent references are carried as uuids.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .common import optional_text, required_text, string_map


# ============================================================================
# Category
# ============================================================================


class CategoryCreate(BaseModel):
    """Schema for creating a category."""

    name: str = Field(..., description="Category name")
    description: Optional[str] = Field(None, description="Category description")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return required_text(v, "Name is required")

    @field_validator("description", mode="before")
    @classmethod
    def clean_description(cls, v: Any) -> Optional[str]:
        return optional_text(v)


class CategoryUpdate(BaseModel):
    """Schema for updating a category."""

    name: Optional[str] = Field(None, description="Category name")
    description: Optional[str] = Field(None, description="Category description")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return required_text(v, "Name cannot be empty")

    @field_validator("description", mode="before")
    @classmethod
    def clean_description(cls, v: Any) -> Optional[str]:
        return optional_text(v)


class CategoryResponse(BaseModel):
    """Schema for a category record."""

    uuid: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }


# ============================================================================
# Group
# ============================================================================


class GroupCreate(BaseModel):
    """Schema for creating a group inside a category."""

    category_uuid: str = Field(..., description="Owning category")
    name: str = Field(..., description="Group name")
    description: Optional[str] = Field(None, description="Group description")
    display_order: Optional[int] = Field(None, description="Sort key; appended last when omitted")
    global_variables: Dict[str, str] = Field(
        default_factory=dict,
        description="Values substituted into {{placeholders}} of the group's prompts",
    )

    @field_validator("category_uuid", mode="before")
    @classmethod
    def validate_category_uuid(cls, v: Any) -> str:
        return required_text(v, "Category UUID is required")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return required_text(v, "Name is required")

    @field_validator("description", mode="before")
    @classmethod
    def clean_description(cls, v: Any) -> Optional[str]:
        return optional_text(v)

    @field_validator("global_variables", mode="before")
    @classmethod
    def validate_variables(cls, v: Any) -> Dict[str, str]:
        return string_map(v)


class GroupUpdate(BaseModel):
    """Schema for updating a group. Moving a group to another category is not supported."""

    name: Optional[str] = Field(None, description="Group name")
    description: Optional[str] = Field(None, description="Group description")
    display_order: Optional[int] = Field(None, description="Sort key")
    global_variables: Optional[Dict[str, str]] = Field(None, description="Replacement variables")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return required_text(v, "Name cannot be empty")

    @field_validator("description", mode="before")
    @classmethod
    def clean_description(cls, v: Any) -> Optional[str]:
        return optional_text(v)

    @field_validator("display_order", mode="before")
    @classmethod
    def validate_display_order(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Display order cannot be empty")
        return v

    @field_validator("global_variables", mode="before")
    @classmethod
    def validate_variables(cls, v: Any) -> Dict[str, str]:
        # Explicit null resets the variables
        return string_map(v)


class GroupResponse(BaseModel):
    """Schema for a group record; ``global_variables`` is always an object."""

    uuid: str
    category_uuid: str
    name: str
    description: Optional[str] = None
    display_order: int = 0
    global_variables: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }

    @field_validator("global_variables", mode="before")
    @classmethod
    def parse_variables(cls, v: Any) -> Dict[str, str]:
        try:
            return string_map(v)
        except ValueError:
            return {}


# ============================================================================
# Management prompt
# ============================================================================


class ManagementPromptCreate(BaseModel):
    """Schema for creating a prompt inside a group."""

    group_uuid: str = Field(..., description="Owning group")
    name: str = Field(..., description="Prompt name")
    content: str = Field(..., description="Prompt text, may contain {{placeholders}}")
    display_order: Optional[int] = Field(None, description="Sort key; appended last when omitted")

    @field_validator("group_uuid", mode="before")
    @classmethod
    def validate_group_uuid(cls, v: Any) -> str:
        return required_text(v, "Group UUID is required")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return required_text(v, "Name is required")

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v: Any) -> str:
        return required_text(v, "Content is required")


class ManagementPromptUpdate(BaseModel):
    """Schema for updating a management prompt; setting ``group_uuid`` moves it."""

    group_uuid: Optional[str] = Field(None, description="New owning group")
    name: Optional[str] = Field(None, description="Prompt name")
    content: Optional[str] = Field(None, description="Prompt text")
    display_order: Optional[int] = Field(None, description="Sort key")

    @field_validator("group_uuid", mode="before")
    @classmethod
    def validate_group_uuid(cls, v: Any) -> str:
        return required_text(v, "Group UUID cannot be empty")

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        return required_text(v, "Name cannot be empty")

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v: Any) -> str:
        return required_text(v, "Content cannot be empty")

    @field_validator("display_order", mode="before")
    @classmethod
    def validate_display_order(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Display order cannot be empty")
        return v


class ManagementPromptResponse(BaseModel):
    """Schema for a management prompt record."""

    uuid: str
    group_uuid: str
    name: str
    content: str
    display_order: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }


class RenderedPrompt(BaseModel):
    """A management prompt with its group's variables substituted."""

    uuid: str = Field(..., description="Management prompt uuid")
    group_uuid: str = Field(..., description="Owning group")
    name: str = Field(..., description="Prompt name")
    content: str = Field(..., description="Content after substitution")
    unresolved: List[str] = Field(
        default_factory=list,
        description="Placeholder names left in the content because the group has no value for them",
    )


# ============================================================================
# Prompt result
# ============================================================================


class PromptResultCreate(BaseModel):
    """Schema for storing a result produced by a management prompt."""

    prompt_uuid: str = Field(..., description="Owning management prompt")
    content: str = Field(..., description="Result text")

    @field_validator("prompt_uuid", mode="before")
    @classmethod
    def validate_prompt_uuid(cls, v: Any) -> str:
        return required_text(v, "Prompt UUID is required")

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v: Any) -> str:
        return required_text(v, "Content is required")


class PromptResultUpdate(BaseModel):
    """Schema for updating a result."""

    content: Optional[str] = Field(None, description="Result text")

    @field_validator("content", mode="before")
    @classmethod
    def validate_content(cls, v: Any) -> str:
        return required_text(v, "Content cannot be empty")


class PromptResultResponse(BaseModel):
    """Schema for a result record."""

    uuid: str
    prompt_uuid: str
    content: str
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True,
    }
