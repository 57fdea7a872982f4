"""
Backend-independent record store contract.

Both the embedded SQLite store and the remote PostgREST store implement
``RecordStore``; everything above this layer (import reconciler, migration
runner, request facade) only talks to this interface.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Union

from ..schemas.common import ReorderItem, coerce_payload
from ..schemas.management import (
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
)
from ..schemas.prompt import (
    PromptCreate,
    PromptListParams,
    PromptResponse,
    PromptSearchParams,
    PromptUpdate,
)

Payload = Union[Dict[str, Any], Any]


class RecordKind(str, Enum):
    """The five persisted entity kinds, in migration order."""

    PROMPT = "prompt"
    CATEGORY = "category"
    GROUP = "group"
    MANAGEMENT_PROMPT = "management_prompt"
    PROMPT_RESULT = "prompt_result"


def coerce_reorder_items(items: Optional[Iterable[Any]]) -> List[ReorderItem]:
    """Validate reorder input (dicts or ``ReorderItem``) into a list of items."""
    if items is None:
        return []
    return [coerce_payload(ReorderItem, item) for item in items]


class RecordStore(ABC):
    """
    Persistence contract shared by all backends.

    Notes:
        - ``create_*`` raise ``ValidationError`` for blank required fields and
          ``NotFoundError`` when the referenced parent does not exist
        - ``update_*`` and ``delete_*`` raise ``NotFoundError`` for unknown uuids
        - ``get_*`` return None for unknown uuids
        - database and network failures surface as ``StorageError``
    """

    #: Human readable backend name used in logs
    backend_name: str = "abstract"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def location(self) -> str:
        """Database file path or service URL."""

    @abstractmethod
    async def ping(self) -> None:
        """Raise ``StorageError`` when the backend cannot be reached."""

    @abstractmethod
    async def close(self) -> None:
        """Release connections held by the store."""

    @asynccontextmanager
    async def batch(self) -> AsyncIterator["RecordStore"]:
        """
        Group a series of calls.

        The default implementation is a no-op: every call stands on its own.
        """
        yield self

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_prompt(
        self, payload: Union[PromptCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> PromptResponse:
        ...

    @abstractmethod
    async def update_prompt(self, uuid: str, payload: Union[PromptUpdate, Payload]) -> PromptResponse:
        ...

    @abstractmethod
    async def delete_prompt(self, uuid: str) -> bool:
        ...

    @abstractmethod
    async def get_prompt(self, uuid: str) -> Optional[PromptResponse]:
        ...

    @abstractmethod
    async def list_prompts(
        self, params: Union[PromptListParams, Payload, None] = None
    ) -> List[PromptResponse]:
        ...

    @abstractmethod
    async def search_prompts(
        self, params: Union[PromptSearchParams, Payload, None] = None
    ) -> List[PromptResponse]:
        ...

    @abstractmethod
    async def export_prompts(self) -> List[PromptResponse]:
        """All non-deleted prompts, oldest first."""

    @abstractmethod
    async def insert_prompt_record(self, record: PromptResponse) -> PromptResponse:
        """Insert a prompt keeping the caller's uuid and timestamps."""

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_category(
        self, payload: Union[CategoryCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> CategoryResponse:
        ...

    @abstractmethod
    async def update_category(self, uuid: str, payload: Union[CategoryUpdate, Payload]) -> CategoryResponse:
        ...

    @abstractmethod
    async def delete_category(self, uuid: str) -> bool:
        ...

    @abstractmethod
    async def get_category(self, uuid: str) -> Optional[CategoryResponse]:
        ...

    @abstractmethod
    async def list_categories(self) -> List[CategoryResponse]:
        ...

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_group(
        self, payload: Union[GroupCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> GroupResponse:
        ...

    @abstractmethod
    async def update_group(self, uuid: str, payload: Union[GroupUpdate, Payload]) -> GroupResponse:
        ...

    @abstractmethod
    async def delete_group(self, uuid: str) -> bool:
        ...

    @abstractmethod
    async def get_group(self, uuid: str) -> Optional[GroupResponse]:
        ...

    @abstractmethod
    async def list_groups(self, category_uuid: str) -> List[GroupResponse]:
        ...

    @abstractmethod
    async def reorder_groups(self, items: Iterable[Union[ReorderItem, Payload]]) -> bool:
        ...

    # ------------------------------------------------------------------
    # Management prompts
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_management_prompt(
        self, payload: Union[ManagementPromptCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> ManagementPromptResponse:
        ...

    @abstractmethod
    async def update_management_prompt(
        self, uuid: str, payload: Union[ManagementPromptUpdate, Payload]
    ) -> ManagementPromptResponse:
        ...

    @abstractmethod
    async def delete_management_prompt(self, uuid: str) -> bool:
        ...

    @abstractmethod
    async def get_management_prompt(self, uuid: str) -> Optional[ManagementPromptResponse]:
        ...

    @abstractmethod
    async def list_management_prompts(self, group_uuid: str) -> List[ManagementPromptResponse]:
        ...

    @abstractmethod
    async def reorder_management_prompts(self, items: Iterable[Union[ReorderItem, Payload]]) -> bool:
        ...

    # ------------------------------------------------------------------
    # Prompt results
    # ------------------------------------------------------------------

    @abstractmethod
    async def create_prompt_result(
        self, payload: Union[PromptResultCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> PromptResultResponse:
        ...

    @abstractmethod
    async def update_prompt_result(
        self, uuid: str, payload: Union[PromptResultUpdate, Payload]
    ) -> PromptResultResponse:
        ...

    @abstractmethod
    async def delete_prompt_result(self, uuid: str) -> bool:
        ...

    @abstractmethod
    async def get_prompt_result(self, uuid: str) -> Optional[PromptResultResponse]:
        ...

    @abstractmethod
    async def list_prompt_results(self, prompt_uuid: str) -> List[PromptResultResponse]:
        ...

    # ------------------------------------------------------------------
    # Bulk access
    # ------------------------------------------------------------------

    @abstractmethod
    async def all_records(self, kind: RecordKind) -> List[Any]:
        """Every non-deleted record of one kind, oldest first."""

    async def get_record(self, kind: RecordKind, uuid: str) -> Optional[Any]:
        """Dispatch ``get_*`` by kind."""
        getters = {
            RecordKind.PROMPT: self.get_prompt,
            RecordKind.CATEGORY: self.get_category,
            RecordKind.GROUP: self.get_group,
            RecordKind.MANAGEMENT_PROMPT: self.get_management_prompt,
            RecordKind.PROMPT_RESULT: self.get_prompt_result,
        }
        return await getters[RecordKind(kind)](uuid)
