"""
Shared validation helpers and small payload schemas.

String handling follows one rule everywhere: required text is trimmed and must
not be blank; optional text is trimmed and stored as null when blank.
"""

import json
from typing import Any, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def required_text(value: Any, message: str) -> str:
    """Trim ``value`` and reject null, non-text or blank input with ``message``."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError(message)
    return value.strip()


def optional_text(value: Any) -> Optional[str]:
    """Trim ``value``; blank or null becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    return value.strip() or None


def string_map(value: Any) -> dict:
    """Coerce a JSON object string or mapping into ``dict[str, str]``; null becomes ``{}``."""
    if value is None or value == "":
        return {}
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    if not isinstance(value, dict):
        raise ValueError("Variables must be an object of string values")
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


def format_validation_error(error: PydanticValidationError) -> str:
    """Human readable one-line summary of a pydantic validation error."""
    parts = []
    for item in error.errors():
        message = str(item.get("msg", "")).removeprefix("Value error, ")
        location = ".".join(str(part) for part in item.get("loc", ()) if part != "__root__")
        if location and not message.lower().startswith(location.replace("_", " ").lower()):
            parts.append(f"{location}: {message}")
        else:
            parts.append(message)
    return "; ".join(parts)


def coerce_payload(schema: Type[ModelT], payload: Union[ModelT, dict, None]) -> ModelT:
    """
    Validate ``payload`` into ``schema``.

    Raises:
        ValidationError: If the payload is not an object or fails validation
    """
    if isinstance(payload, schema):
        return payload
    if payload is None:
        payload = {}
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be an object")
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(format_validation_error(e)) from e


class ReorderItem(BaseModel):
    """New position of one record."""

    uuid: str = Field(..., min_length=1, description="Record UUID")
    display_order: int = Field(..., description="New sort key")


class ReorderItemsPayload(BaseModel):
    """Bulk reorder request; partial sibling sets are accepted."""

    items: List[ReorderItem] = Field(default_factory=list, description="Records to move")
