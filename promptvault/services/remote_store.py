"""
Remote record store backed by a Supabase / PostgREST service.

Same contract as the embedded store. Differences that follow from the
transport:
- every call is an independent HTTP request; ``batch()`` groups nothing
- search always uses case-insensitive substring matching
- reorder applies items one by one and stops at the first failure
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import uuid4

import httpx

from ..core.exceptions import NotFoundError, StorageError
from ..core.remote_config import RemoteConfig
from ..schemas.common import coerce_payload
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
from ..utils.timestamps import now_iso, to_storage
from .postgrest_client import PostgRESTClient, any_ilike, eq, ilike, is_null
from .record_store import Payload, RecordKind, RecordStore, coerce_reorder_items

logger = logging.getLogger(__name__)

PROMPTS = "prompts"
CATEGORIES = "categories"
GROUPS = "groups"
MANAGEMENT_PROMPTS = "management_prompts"
PROMPT_RESULTS = "prompt_results"

_TEXT_COLUMNS = ("title", "description", "content")


class RemoteRecordStore(RecordStore):
    """RecordStore over the PostgREST HTTP API."""

    backend_name = "remote"

    def __init__(self, client: PostgRESTClient):
        self.client = client

    @classmethod
    def from_config(
        cls, config: RemoteConfig, http_client: Optional[httpx.AsyncClient] = None
    ) -> "RemoteRecordStore":
        logger.info(f"Using remote backend at {config.url} (config from {config.source})")
        return cls(PostgRESTClient(config.url, config.anon_key, http_client=http_client))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def location(self) -> str:
        return self.client.base_url

    async def ping(self) -> None:
        await self.client.select(PROMPTS, columns="uuid", limit=1)

    async def close(self) -> None:
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _first(self, table: str, filters: List[Any]) -> Optional[Dict[str, Any]]:
        rows = await self.client.select(table, filters=filters, limit=1)
        return rows[0] if rows else None

    async def _next_display_order(self, table: str, parent_column: str, parent_uuid: str) -> int:
        rows = await self.client.select(
            table,
            filters=[eq(parent_column, parent_uuid)],
            order=[("display_order", False)],
            limit=1,
            columns="display_order",
        )
        current_max = rows[0].get("display_order") if rows else None
        return (current_max if current_max is not None else -1) + 1

    async def _patch_one(self, table: str, uuid: str, values: Dict[str, Any], label: str) -> Dict[str, Any]:
        rows = await self.client.update(table, values, [eq("uuid", uuid)])
        if not rows:
            raise NotFoundError(f"{label} not found")
        return rows[0]

    async def _delete_one(self, table: str, uuid: str, label: str) -> bool:
        rows = await self.client.delete(table, [eq("uuid", uuid)])
        if not rows:
            raise NotFoundError(f"{label} not found")
        logger.info(f"Deleted {label.lower()} {uuid}")
        return True

    async def _reorder(self, table: str, items: Iterable[Any]) -> bool:
        """Apply items in sequence; a failure stops the run and reports how far it got."""
        reorder_items = coerce_reorder_items(items)
        applied = 0
        for item in reorder_items:
            try:
                await self.client.update(table, {"display_order": item.display_order}, [eq("uuid", item.uuid)])
            except StorageError as e:
                raise StorageError(
                    f"Reorder stopped at {item.uuid}: {applied} of {len(reorder_items)} items applied ({e.detail})"
                ) from e
            applied += 1
        return True

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    async def create_prompt(
        self, payload: Union[PromptCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> PromptResponse:
        data = coerce_payload(PromptCreate, payload)
        now = now_iso()
        row = await self.client.insert(
            PROMPTS,
            {"uuid": record_uuid or str(uuid4()), **data.model_dump(), "created_at": now, "updated_at": now},
        )
        logger.info(f"Created prompt {row['uuid']}")
        return PromptResponse.model_validate(row)

    async def update_prompt(self, uuid: str, payload: Union[PromptUpdate, Payload]) -> PromptResponse:
        changes = coerce_payload(PromptUpdate, payload).model_dump(exclude_unset=True)
        if not changes:
            current = await self.get_prompt(uuid)
            if current is None:
                raise NotFoundError("Prompt not found")
            return current

        rows = await self.client.update(
            PROMPTS, {**changes, "updated_at": now_iso()}, [eq("uuid", uuid), is_null("deleted_at")]
        )
        if not rows:
            raise NotFoundError("Prompt not found")
        return PromptResponse.model_validate(rows[0])

    async def delete_prompt(self, uuid: str) -> bool:
        """Soft delete, same as the embedded backend."""
        rows = await self.client.update(
            PROMPTS, {"deleted_at": now_iso()}, [eq("uuid", uuid), is_null("deleted_at")]
        )
        if not rows:
            raise NotFoundError("Prompt not found")
        logger.info(f"Deleted prompt {uuid}")
        return True

    async def get_prompt(self, uuid: str) -> Optional[PromptResponse]:
        row = await self._first(PROMPTS, [eq("uuid", uuid), is_null("deleted_at")])
        return PromptResponse.model_validate(row) if row else None

    async def list_prompts(
        self, params: Union[PromptListParams, Payload, None] = None
    ) -> List[PromptResponse]:
        params = coerce_payload(PromptListParams, params)
        rows = await self.client.select(
            PROMPTS,
            filters=[is_null("deleted_at")],
            order=[(params.sort, params.order == "asc")],
            limit=params.limit,
            offset=params.offset,
        )
        return [PromptResponse.model_validate(row) for row in rows]

    async def search_prompts(
        self, params: Union[PromptSearchParams, Payload, None] = None
    ) -> List[PromptResponse]:
        """Substring search; the ``mode`` parameter is accepted and served as contains."""
        params = coerce_payload(PromptSearchParams, params)
        if params.is_empty:
            return await self.list_prompts(params.to_list_params())

        filters = [is_null("deleted_at")]
        if params.query:
            filters.append(any_ilike(_TEXT_COLUMNS, params.query))
        if params.category:
            filters.append(eq("category", params.category))
        if params.tag:
            filters.append(ilike("tags", params.tag))

        rows = await self.client.select(
            PROMPTS,
            filters=filters,
            order=[("updated_at", False)],
            limit=params.limit,
            offset=params.offset,
        )
        return [PromptResponse.model_validate(row) for row in rows]

    async def export_prompts(self) -> List[PromptResponse]:
        rows = await self.client.select(
            PROMPTS, filters=[is_null("deleted_at")], order=[("created_at", True)]
        )
        return [PromptResponse.model_validate(row) for row in rows]

    async def insert_prompt_record(self, record: PromptResponse) -> PromptResponse:
        row = record.model_dump(mode="json")
        row["created_at"] = to_storage(record.created_at)
        row["updated_at"] = to_storage(record.updated_at)
        created = await self.client.insert(PROMPTS, row)
        return PromptResponse.model_validate(created)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def create_category(
        self, payload: Union[CategoryCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> CategoryResponse:
        data = coerce_payload(CategoryCreate, payload)
        now = now_iso()
        row = await self.client.insert(
            CATEGORIES,
            {"uuid": record_uuid or str(uuid4()), **data.model_dump(), "created_at": now, "updated_at": now},
        )
        logger.info(f"Created category {row['uuid']}")
        return CategoryResponse.model_validate(row)

    async def update_category(self, uuid: str, payload: Union[CategoryUpdate, Payload]) -> CategoryResponse:
        changes = coerce_payload(CategoryUpdate, payload).model_dump(exclude_unset=True)
        if not changes:
            current = await self.get_category(uuid)
            if current is None:
                raise NotFoundError("Category not found")
            return current
        row = await self._patch_one(CATEGORIES, uuid, {**changes, "updated_at": now_iso()}, "Category")
        return CategoryResponse.model_validate(row)

    async def delete_category(self, uuid: str) -> bool:
        return await self._delete_one(CATEGORIES, uuid, "Category")

    async def get_category(self, uuid: str) -> Optional[CategoryResponse]:
        row = await self._first(CATEGORIES, [eq("uuid", uuid)])
        return CategoryResponse.model_validate(row) if row else None

    async def list_categories(self) -> List[CategoryResponse]:
        rows = await self.client.select(CATEGORIES, order=[("name", True)])
        return [CategoryResponse.model_validate(row) for row in rows]

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    async def create_group(
        self, payload: Union[GroupCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> GroupResponse:
        data = coerce_payload(GroupCreate, payload)
        if await self.get_category(data.category_uuid) is None:
            raise NotFoundError("Category not found")

        display_order = data.display_order
        if display_order is None:
            display_order = await self._next_display_order(GROUPS, "category_uuid", data.category_uuid)

        now = now_iso()
        row = await self.client.insert(
            GROUPS,
            {
                "uuid": record_uuid or str(uuid4()),
                "category_uuid": data.category_uuid,
                "name": data.name,
                "description": data.description,
                "display_order": display_order,
                "global_variables": data.global_variables,
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info(f"Created group {row['uuid']} in category {data.category_uuid}")
        return GroupResponse.model_validate(row)

    async def update_group(self, uuid: str, payload: Union[GroupUpdate, Payload]) -> GroupResponse:
        changes = coerce_payload(GroupUpdate, payload).model_dump(exclude_unset=True)
        if not changes:
            current = await self.get_group(uuid)
            if current is None:
                raise NotFoundError("Group not found")
            return current
        if "global_variables" in changes:
            changes["global_variables"] = changes["global_variables"] or {}
        row = await self._patch_one(GROUPS, uuid, {**changes, "updated_at": now_iso()}, "Group")
        return GroupResponse.model_validate(row)

    async def delete_group(self, uuid: str) -> bool:
        return await self._delete_one(GROUPS, uuid, "Group")

    async def get_group(self, uuid: str) -> Optional[GroupResponse]:
        row = await self._first(GROUPS, [eq("uuid", uuid)])
        return GroupResponse.model_validate(row) if row else None

    async def list_groups(self, category_uuid: str) -> List[GroupResponse]:
        rows = await self.client.select(
            GROUPS,
            filters=[eq("category_uuid", category_uuid)],
            order=[("display_order", True), ("created_at", True)],
        )
        return [GroupResponse.model_validate(row) for row in rows]

    async def reorder_groups(self, items: Iterable[Any]) -> bool:
        return await self._reorder(GROUPS, items)

    # ------------------------------------------------------------------
    # Management prompts
    # ------------------------------------------------------------------

    async def create_management_prompt(
        self, payload: Union[ManagementPromptCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> ManagementPromptResponse:
        data = coerce_payload(ManagementPromptCreate, payload)
        if await self.get_group(data.group_uuid) is None:
            raise NotFoundError("Group not found")

        display_order = data.display_order
        if display_order is None:
            display_order = await self._next_display_order(MANAGEMENT_PROMPTS, "group_uuid", data.group_uuid)

        now = now_iso()
        row = await self.client.insert(
            MANAGEMENT_PROMPTS,
            {
                "uuid": record_uuid or str(uuid4()),
                "group_uuid": data.group_uuid,
                "name": data.name,
                "content": data.content,
                "display_order": display_order,
                "created_at": now,
                "updated_at": now,
            },
        )
        logger.info(f"Created management prompt {row['uuid']} in group {data.group_uuid}")
        return ManagementPromptResponse.model_validate(row)

    async def update_management_prompt(
        self, uuid: str, payload: Union[ManagementPromptUpdate, Payload]
    ) -> ManagementPromptResponse:
        changes = coerce_payload(ManagementPromptUpdate, payload).model_dump(exclude_unset=True)
        if not changes:
            current = await self.get_management_prompt(uuid)
            if current is None:
                raise NotFoundError("Management prompt not found")
            return current
        if "group_uuid" in changes and await self.get_group(changes["group_uuid"]) is None:
            raise NotFoundError("Group not found")
        row = await self._patch_one(
            MANAGEMENT_PROMPTS, uuid, {**changes, "updated_at": now_iso()}, "Management prompt"
        )
        return ManagementPromptResponse.model_validate(row)

    async def delete_management_prompt(self, uuid: str) -> bool:
        return await self._delete_one(MANAGEMENT_PROMPTS, uuid, "Management prompt")

    async def get_management_prompt(self, uuid: str) -> Optional[ManagementPromptResponse]:
        row = await self._first(MANAGEMENT_PROMPTS, [eq("uuid", uuid)])
        return ManagementPromptResponse.model_validate(row) if row else None

    async def list_management_prompts(self, group_uuid: str) -> List[ManagementPromptResponse]:
        rows = await self.client.select(
            MANAGEMENT_PROMPTS,
            filters=[eq("group_uuid", group_uuid)],
            order=[("display_order", True), ("created_at", True)],
        )
        return [ManagementPromptResponse.model_validate(row) for row in rows]

    async def reorder_management_prompts(self, items: Iterable[Any]) -> bool:
        return await self._reorder(MANAGEMENT_PROMPTS, items)

    # ------------------------------------------------------------------
    # Prompt results
    # ------------------------------------------------------------------

    async def create_prompt_result(
        self, payload: Union[PromptResultCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> PromptResultResponse:
        data = coerce_payload(PromptResultCreate, payload)
        if await self.get_management_prompt(data.prompt_uuid) is None:
            raise NotFoundError("Management prompt not found")

        now = now_iso()
        row = await self.client.insert(
            PROMPT_RESULTS,
            {
                "uuid": record_uuid or str(uuid4()),
                "prompt_uuid": data.prompt_uuid,
                "content": data.content,
                "created_at": now,
                "updated_at": now,
            },
        )
        return PromptResultResponse.model_validate(row)

    async def update_prompt_result(
        self, uuid: str, payload: Union[PromptResultUpdate, Payload]
    ) -> PromptResultResponse:
        changes = coerce_payload(PromptResultUpdate, payload).model_dump(exclude_unset=True)
        if not changes:
            current = await self.get_prompt_result(uuid)
            if current is None:
                raise NotFoundError("Prompt result not found")
            return current
        row = await self._patch_one(PROMPT_RESULTS, uuid, {**changes, "updated_at": now_iso()}, "Prompt result")
        return PromptResultResponse.model_validate(row)

    async def delete_prompt_result(self, uuid: str) -> bool:
        return await self._delete_one(PROMPT_RESULTS, uuid, "Prompt result")

    async def get_prompt_result(self, uuid: str) -> Optional[PromptResultResponse]:
        row = await self._first(PROMPT_RESULTS, [eq("uuid", uuid)])
        return PromptResultResponse.model_validate(row) if row else None

    async def list_prompt_results(self, prompt_uuid: str) -> List[PromptResultResponse]:
        rows = await self.client.select(
            PROMPT_RESULTS,
            filters=[eq("prompt_uuid", prompt_uuid)],
            order=[("created_at", False)],
        )
        return [PromptResultResponse.model_validate(row) for row in rows]

    # ------------------------------------------------------------------
    # Bulk access
    # ------------------------------------------------------------------

    async def all_records(self, kind: RecordKind) -> List[Any]:
        kind = RecordKind(kind)
        if kind == RecordKind.PROMPT:
            return await self.export_prompts()

        table, schema = {
            RecordKind.CATEGORY: (CATEGORIES, CategoryResponse),
            RecordKind.GROUP: (GROUPS, GroupResponse),
            RecordKind.MANAGEMENT_PROMPT: (MANAGEMENT_PROMPTS, ManagementPromptResponse),
            RecordKind.PROMPT_RESULT: (PROMPT_RESULTS, PromptResultResponse),
        }[kind]
        rows = await self.client.select(table, order=[("created_at", True)])
        return [schema.model_validate(row) for row in rows]
