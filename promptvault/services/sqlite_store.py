"""
Embedded record store backed by SQLite.

This module contains the SQLiteRecordStore class which implements the
RecordStore contract on top of the async SQLAlchemy ``Database`` handle.
Full-text search uses the ``prompts_fts`` FTS5 index maintained by triggers.
"""

import json
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, List, Optional, Union
from uuid import uuid4

from sqlalchemy import column, delete, func, or_, select, table, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import Database
from ..core.exceptions import NotFoundError, PromptVaultError, StorageError
from ..models import Category, Group, ManagementPrompt, Prompt, PromptResult
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
    SearchMode,
)
from ..utils.timestamps import now_iso, to_storage
from .record_store import Payload, RecordKind, RecordStore, coerce_reorder_items

logger = logging.getLogger(__name__)

# Lightweight handle on the FTS5 virtual table created in core.database
prompts_fts = table("prompts_fts", column("rowid"), column("rank"))

_SORT_COLUMNS = {
    "updated_at": Prompt.updated_at,
    "created_at": Prompt.created_at,
    "title": Prompt.title,
}


def build_match_expression(query: str) -> str:
    """
    Turn free text into an FTS5 MATCH expression.

    Every whitespace separated term is quoted (so FTS operators in user input
    are matched literally) and the terms are OR-ed.
    """
    terms = query.split()
    return " OR ".join('"' + term.replace('"', '""') + '"' for term in terms)


def contains_pattern(fragment: str) -> str:
    """LIKE pattern matching ``fragment`` literally anywhere; escape character is ``\\``."""
    escaped = fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SQLiteRecordStore(RecordStore):
    """
    RecordStore on an embedded SQLite database.

    Calls made inside ``batch()`` share one transaction; each call runs in its
    own SAVEPOINT so a failing call does not undo the others.
    """

    backend_name = "sqlite"

    def __init__(self, database: Database, search_mode: SearchMode = SearchMode.FULLTEXT):
        self.database = database
        self.search_mode = SearchMode(search_mode)
        self._batch_session: ContextVar[Optional[AsyncSession]] = ContextVar(
            f"sqlite_store_batch_{id(self)}", default=None
        )

    @classmethod
    async def open(
        cls,
        path: Union[str, Path],
        search_mode: SearchMode = SearchMode.FULLTEXT,
        echo: bool = False,
    ) -> "SQLiteRecordStore":
        """Open (and create if needed) the database at ``path``."""
        database = Database(path, echo=echo)
        await database.open()
        return cls(database, search_mode=search_mode)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def location(self) -> str:
        return str(self.database.path)

    async def ping(self) -> None:
        if not self.database.is_open or not await self.database.check_connection():
            raise StorageError(f"Database at {self.database.path} is not reachable")

    async def close(self) -> None:
        await self.database.close()

    @asynccontextmanager
    async def batch(self) -> AsyncIterator["SQLiteRecordStore"]:
        if self._batch_session.get() is not None:
            yield self
            return

        try:
            async with self.database.session() as session:
                token = self._batch_session.set(session)
                try:
                    yield self
                finally:
                    self._batch_session.reset(token)
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Session for one store call: a savepoint inside a batch, else its own transaction."""
        active = self._batch_session.get()
        try:
            if active is not None:
                async with active.begin_nested():
                    yield active
            else:
                async with self.database.session() as session:
                    yield session
        except PromptVaultError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"SQLite operation failed: {e}")
            raise StorageError(str(e)) from e

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    @staticmethod
    async def _live_prompt(session: AsyncSession, uuid: str) -> Optional[Prompt]:
        result = await session.execute(
            select(Prompt).where(Prompt.uuid == uuid, Prompt.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def create_prompt(
        self, payload: Union[PromptCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> PromptResponse:
        """
        Create a new prompt.

        Args:
            payload: Prompt creation data
            record_uuid: Keep this uuid instead of generating one (migration)

        Returns:
            Created prompt
        """
        data = coerce_payload(PromptCreate, payload)
        now = now_iso()
        prompt = Prompt(
            uuid=record_uuid or str(uuid4()),
            **data.model_dump(),
            created_at=now,
            updated_at=now,
        )

        async with self._session() as session:
            session.add(prompt)
            await session.flush()

        logger.info(f"Created prompt {prompt.uuid}")
        return PromptResponse.model_validate(prompt)

    async def update_prompt(self, uuid: str, payload: Union[PromptUpdate, Payload]) -> PromptResponse:
        """
        Update the fields present in ``payload``.

        Raises:
            NotFoundError: If the prompt does not exist or was deleted
        """
        changes = coerce_payload(PromptUpdate, payload).model_dump(exclude_unset=True)

        async with self._session() as session:
            prompt = await self._live_prompt(session, uuid)
            if prompt is None:
                raise NotFoundError("Prompt not found")

            if changes:
                for field, value in changes.items():
                    setattr(prompt, field, value)
                prompt.updated_at = now_iso()
                await session.flush()

        return PromptResponse.model_validate(prompt)

    async def delete_prompt(self, uuid: str) -> bool:
        """Soft delete: the row stays, every read skips it."""
        async with self._session() as session:
            prompt = await self._live_prompt(session, uuid)
            if prompt is None:
                raise NotFoundError("Prompt not found")
            prompt.deleted_at = now_iso()
            await session.flush()

        logger.info(f"Deleted prompt {uuid}")
        return True

    async def get_prompt(self, uuid: str) -> Optional[PromptResponse]:
        async with self._session() as session:
            prompt = await self._live_prompt(session, uuid)
        return PromptResponse.model_validate(prompt) if prompt else None

    async def list_prompts(
        self, params: Union[PromptListParams, Payload, None] = None
    ) -> List[PromptResponse]:
        """
        List non-deleted prompts with pagination and sorting.

        Args:
            params: limit/offset/sort/order; unknown sort or order values fall
                back to updated_at / desc

        Returns:
            List of prompts
        """
        params = coerce_payload(PromptListParams, params)
        sort_column = _SORT_COLUMNS[params.sort]
        ordering = sort_column.asc() if params.order == "asc" else sort_column.desc()

        query = (
            select(Prompt)
            .where(Prompt.deleted_at.is_(None))
            .order_by(ordering, Prompt.id)
            .offset(params.offset)
            .limit(params.limit)
        )
        async with self._session() as session:
            result = await session.execute(query)
            prompts = result.scalars().all()

        return [PromptResponse.model_validate(p) for p in prompts]

    async def search_prompts(
        self, params: Union[PromptSearchParams, Payload, None] = None
    ) -> List[PromptResponse]:
        """
        Search prompts by text with optional category and tag filters.

        Without text and filters this is ``list_prompts`` with the same
        pagination. Fulltext mode ranks by bm25 through the FTS5 index;
        contains mode is a case-insensitive substring match.
        """
        params = coerce_payload(PromptSearchParams, params)
        if params.is_empty:
            return await self.list_prompts(params.to_list_params())

        mode = params.mode or self.search_mode
        query = select(Prompt).where(Prompt.deleted_at.is_(None))

        if params.query and mode == SearchMode.FULLTEXT:
            query = (
                query.join(prompts_fts, prompts_fts.c.rowid == Prompt.id)
                .where(text("prompts_fts MATCH :match").bindparams(match=build_match_expression(params.query)))
                .order_by(prompts_fts.c.rank, Prompt.updated_at.desc())
            )
        else:
            if params.query:
                pattern = contains_pattern(params.query)
                query = query.where(
                    or_(
                        Prompt.title.ilike(pattern, escape="\\"),
                        Prompt.description.ilike(pattern, escape="\\"),
                        Prompt.content.ilike(pattern, escape="\\"),
                    )
                )
            query = query.order_by(Prompt.updated_at.desc())

        if params.category:
            query = query.where(Prompt.category == params.category)
        if params.tag:
            query = query.where(Prompt.tags.ilike(contains_pattern(params.tag), escape="\\"))

        query = query.offset(params.offset).limit(params.limit)

        async with self._session() as session:
            result = await session.execute(query)
            prompts = result.scalars().all()

        return [PromptResponse.model_validate(p) for p in prompts]

    async def export_prompts(self) -> List[PromptResponse]:
        async with self._session() as session:
            result = await session.execute(
                select(Prompt)
                .where(Prompt.deleted_at.is_(None))
                .order_by(Prompt.created_at.asc(), Prompt.id)
            )
            prompts = result.scalars().all()
        return [PromptResponse.model_validate(p) for p in prompts]

    async def insert_prompt_record(self, record: PromptResponse) -> PromptResponse:
        prompt = Prompt(
            uuid=record.uuid,
            title=record.title,
            description=record.description,
            content=record.content,
            tags=record.tags,
            category=record.category,
            language=record.language,
            is_favorite=record.is_favorite,
            created_at=to_storage(record.created_at),
            updated_at=to_storage(record.updated_at),
        )
        async with self._session() as session:
            session.add(prompt)
            await session.flush()
        return PromptResponse.model_validate(prompt)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    @staticmethod
    async def _category(session: AsyncSession, uuid: str) -> Optional[Category]:
        result = await session.execute(select(Category).where(Category.uuid == uuid))
        return result.scalar_one_or_none()

    async def create_category(
        self, payload: Union[CategoryCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> CategoryResponse:
        data = coerce_payload(CategoryCreate, payload)
        now = now_iso()
        category = Category(
            uuid=record_uuid or str(uuid4()),
            name=data.name,
            description=data.description,
            created_at=now,
            updated_at=now,
        )
        async with self._session() as session:
            session.add(category)
            await session.flush()

        logger.info(f"Created category {category.uuid}")
        return CategoryResponse.model_validate(category)

    async def update_category(self, uuid: str, payload: Union[CategoryUpdate, Payload]) -> CategoryResponse:
        changes = coerce_payload(CategoryUpdate, payload).model_dump(exclude_unset=True)

        async with self._session() as session:
            category = await self._category(session, uuid)
            if category is None:
                raise NotFoundError("Category not found")
            if changes:
                for field, value in changes.items():
                    setattr(category, field, value)
                category.updated_at = now_iso()
                await session.flush()

        return CategoryResponse.model_validate(category)

    async def delete_category(self, uuid: str) -> bool:
        """Delete a category together with its groups, their prompts and results."""
        async with self._session() as session:
            result = await session.execute(delete(Category).where(Category.uuid == uuid))
            if result.rowcount == 0:
                raise NotFoundError("Category not found")

        logger.info(f"Deleted category {uuid}")
        return True

    async def get_category(self, uuid: str) -> Optional[CategoryResponse]:
        async with self._session() as session:
            category = await self._category(session, uuid)
        return CategoryResponse.model_validate(category) if category else None

    async def list_categories(self) -> List[CategoryResponse]:
        async with self._session() as session:
            result = await session.execute(select(Category).order_by(Category.name.asc(), Category.id))
            categories = result.scalars().all()
        return [CategoryResponse.model_validate(c) for c in categories]

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    @staticmethod
    async def _group(session: AsyncSession, uuid: str) -> Optional[Group]:
        result = await session.execute(select(Group).where(Group.uuid == uuid))
        return result.scalar_one_or_none()

    async def create_group(
        self, payload: Union[GroupCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> GroupResponse:
        """
        Create a group in an existing category.

        When ``display_order`` is omitted the group is appended after its
        siblings (0 for the first group of a category).

        Raises:
            NotFoundError: If the category does not exist
        """
        data = coerce_payload(GroupCreate, payload)

        async with self._session() as session:
            if await self._category(session, data.category_uuid) is None:
                raise NotFoundError("Category not found")

            display_order = data.display_order
            if display_order is None:
                current_max = await session.scalar(
                    select(func.max(Group.display_order)).where(Group.category_uuid == data.category_uuid)
                )
                display_order = (current_max if current_max is not None else -1) + 1

            now = now_iso()
            group = Group(
                uuid=record_uuid or str(uuid4()),
                category_uuid=data.category_uuid,
                name=data.name,
                description=data.description,
                display_order=display_order,
                global_variables=json.dumps(data.global_variables, ensure_ascii=False),
                created_at=now,
                updated_at=now,
            )
            session.add(group)
            await session.flush()

        logger.info(f"Created group {group.uuid} in category {group.category_uuid}")
        return GroupResponse.model_validate(group)

    async def update_group(self, uuid: str, payload: Union[GroupUpdate, Payload]) -> GroupResponse:
        changes = coerce_payload(GroupUpdate, payload).model_dump(exclude_unset=True)
        if "global_variables" in changes:
            changes["global_variables"] = json.dumps(changes["global_variables"] or {}, ensure_ascii=False)

        async with self._session() as session:
            group = await self._group(session, uuid)
            if group is None:
                raise NotFoundError("Group not found")
            if changes:
                for field, value in changes.items():
                    setattr(group, field, value)
                group.updated_at = now_iso()
                await session.flush()

        return GroupResponse.model_validate(group)

    async def delete_group(self, uuid: str) -> bool:
        async with self._session() as session:
            result = await session.execute(delete(Group).where(Group.uuid == uuid))
            if result.rowcount == 0:
                raise NotFoundError("Group not found")

        logger.info(f"Deleted group {uuid}")
        return True

    async def get_group(self, uuid: str) -> Optional[GroupResponse]:
        async with self._session() as session:
            group = await self._group(session, uuid)
        return GroupResponse.model_validate(group) if group else None

    async def list_groups(self, category_uuid: str) -> List[GroupResponse]:
        async with self._session() as session:
            result = await session.execute(
                select(Group)
                .where(Group.category_uuid == category_uuid)
                .order_by(Group.display_order.asc(), Group.created_at.asc(), Group.id)
            )
            groups = result.scalars().all()
        return [GroupResponse.model_validate(g) for g in groups]

    async def reorder_groups(self, items: Iterable[Any]) -> bool:
        """
        Apply new display orders in one transaction.

        Items may cover any subset of siblings; unknown uuids are ignored and
        ``updated_at`` is left untouched.
        """
        reorder_items = coerce_reorder_items(items)
        async with self._session() as session:
            for item in reorder_items:
                await session.execute(
                    update(Group).where(Group.uuid == item.uuid).values(display_order=item.display_order)
                )
        return True

    # ------------------------------------------------------------------
    # Management prompts
    # ------------------------------------------------------------------

    @staticmethod
    async def _management_prompt(session: AsyncSession, uuid: str) -> Optional[ManagementPrompt]:
        result = await session.execute(select(ManagementPrompt).where(ManagementPrompt.uuid == uuid))
        return result.scalar_one_or_none()

    async def create_management_prompt(
        self, payload: Union[ManagementPromptCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> ManagementPromptResponse:
        data = coerce_payload(ManagementPromptCreate, payload)

        async with self._session() as session:
            if await self._group(session, data.group_uuid) is None:
                raise NotFoundError("Group not found")

            display_order = data.display_order
            if display_order is None:
                current_max = await session.scalar(
                    select(func.max(ManagementPrompt.display_order)).where(
                        ManagementPrompt.group_uuid == data.group_uuid
                    )
                )
                display_order = (current_max if current_max is not None else -1) + 1

            now = now_iso()
            prompt = ManagementPrompt(
                uuid=record_uuid or str(uuid4()),
                group_uuid=data.group_uuid,
                name=data.name,
                content=data.content,
                display_order=display_order,
                created_at=now,
                updated_at=now,
            )
            session.add(prompt)
            await session.flush()

        logger.info(f"Created management prompt {prompt.uuid} in group {prompt.group_uuid}")
        return ManagementPromptResponse.model_validate(prompt)

    async def update_management_prompt(
        self, uuid: str, payload: Union[ManagementPromptUpdate, Payload]
    ) -> ManagementPromptResponse:
        """
        Update a management prompt; a new ``group_uuid`` moves it to that group.

        Raises:
            NotFoundError: If the prompt or the target group does not exist
        """
        changes = coerce_payload(ManagementPromptUpdate, payload).model_dump(exclude_unset=True)

        async with self._session() as session:
            prompt = await self._management_prompt(session, uuid)
            if prompt is None:
                raise NotFoundError("Management prompt not found")
            if "group_uuid" in changes and await self._group(session, changes["group_uuid"]) is None:
                raise NotFoundError("Group not found")
            if changes:
                for field, value in changes.items():
                    setattr(prompt, field, value)
                prompt.updated_at = now_iso()
                await session.flush()

        return ManagementPromptResponse.model_validate(prompt)

    async def delete_management_prompt(self, uuid: str) -> bool:
        async with self._session() as session:
            result = await session.execute(delete(ManagementPrompt).where(ManagementPrompt.uuid == uuid))
            if result.rowcount == 0:
                raise NotFoundError("Management prompt not found")

        logger.info(f"Deleted management prompt {uuid}")
        return True

    async def get_management_prompt(self, uuid: str) -> Optional[ManagementPromptResponse]:
        async with self._session() as session:
            prompt = await self._management_prompt(session, uuid)
        return ManagementPromptResponse.model_validate(prompt) if prompt else None

    async def list_management_prompts(self, group_uuid: str) -> List[ManagementPromptResponse]:
        async with self._session() as session:
            result = await session.execute(
                select(ManagementPrompt)
                .where(ManagementPrompt.group_uuid == group_uuid)
                .order_by(
                    ManagementPrompt.display_order.asc(),
                    ManagementPrompt.created_at.asc(),
                    ManagementPrompt.id,
                )
            )
            prompts = result.scalars().all()
        return [ManagementPromptResponse.model_validate(p) for p in prompts]

    async def reorder_management_prompts(self, items: Iterable[Any]) -> bool:
        reorder_items = coerce_reorder_items(items)
        async with self._session() as session:
            for item in reorder_items:
                await session.execute(
                    update(ManagementPrompt)
                    .where(ManagementPrompt.uuid == item.uuid)
                    .values(display_order=item.display_order)
                )
        return True

    # ------------------------------------------------------------------
    # Prompt results
    # ------------------------------------------------------------------

    @staticmethod
    async def _prompt_result(session: AsyncSession, uuid: str) -> Optional[PromptResult]:
        result = await session.execute(select(PromptResult).where(PromptResult.uuid == uuid))
        return result.scalar_one_or_none()

    async def create_prompt_result(
        self, payload: Union[PromptResultCreate, Payload], *, record_uuid: Optional[str] = None
    ) -> PromptResultResponse:
        data = coerce_payload(PromptResultCreate, payload)

        async with self._session() as session:
            if await self._management_prompt(session, data.prompt_uuid) is None:
                raise NotFoundError("Management prompt not found")

            now = now_iso()
            prompt_result = PromptResult(
                uuid=record_uuid or str(uuid4()),
                prompt_uuid=data.prompt_uuid,
                content=data.content,
                created_at=now,
                updated_at=now,
            )
            session.add(prompt_result)
            await session.flush()

        return PromptResultResponse.model_validate(prompt_result)

    async def update_prompt_result(
        self, uuid: str, payload: Union[PromptResultUpdate, Payload]
    ) -> PromptResultResponse:
        changes = coerce_payload(PromptResultUpdate, payload).model_dump(exclude_unset=True)

        async with self._session() as session:
            prompt_result = await self._prompt_result(session, uuid)
            if prompt_result is None:
                raise NotFoundError("Prompt result not found")
            if changes:
                for field, value in changes.items():
                    setattr(prompt_result, field, value)
                prompt_result.updated_at = now_iso()
                await session.flush()

        return PromptResultResponse.model_validate(prompt_result)

    async def delete_prompt_result(self, uuid: str) -> bool:
        async with self._session() as session:
            result = await session.execute(delete(PromptResult).where(PromptResult.uuid == uuid))
            if result.rowcount == 0:
                raise NotFoundError("Prompt result not found")
        return True

    async def get_prompt_result(self, uuid: str) -> Optional[PromptResultResponse]:
        async with self._session() as session:
            prompt_result = await self._prompt_result(session, uuid)
        return PromptResultResponse.model_validate(prompt_result) if prompt_result else None

    async def list_prompt_results(self, prompt_uuid: str) -> List[PromptResultResponse]:
        """Results of one management prompt, newest first."""
        async with self._session() as session:
            result = await session.execute(
                select(PromptResult)
                .where(PromptResult.prompt_uuid == prompt_uuid)
                .order_by(PromptResult.created_at.desc(), PromptResult.id.desc())
            )
            results = result.scalars().all()
        return [PromptResultResponse.model_validate(r) for r in results]

    # ------------------------------------------------------------------
    # Bulk access
    # ------------------------------------------------------------------

    async def all_records(self, kind: RecordKind) -> List[Any]:
        kind = RecordKind(kind)
        if kind == RecordKind.PROMPT:
            return await self.export_prompts()

        model, schema = {
            RecordKind.CATEGORY: (Category, CategoryResponse),
            RecordKind.GROUP: (Group, GroupResponse),
            RecordKind.MANAGEMENT_PROMPT: (ManagementPrompt, ManagementPromptResponse),
            RecordKind.PROMPT_RESULT: (PromptResult, PromptResultResponse),
        }[kind]

        async with self._session() as session:
            result = await session.execute(select(model).order_by(model.created_at.asc(), model.id))
            rows = result.scalars().all()
        return [schema.model_validate(row) for row in rows]
