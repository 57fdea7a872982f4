"""
One-shot copy of every record from the embedded store to the remote store.

Kinds are copied parents first (prompts, categories, groups, management
prompts, results). Each record keeps its uuid and parent references but gets
fresh timestamps from the target's create path. Records whose uuid already
exists in the target are skipped, so the migration can be rerun safely.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Tuple

from ..core.exceptions import StorageError
from ..schemas.migration import MigrationResult
from .record_store import RecordKind, RecordStore

logger = logging.getLogger(__name__)

MIGRATION_ORDER: Tuple[RecordKind, ...] = (
    RecordKind.PROMPT,
    RecordKind.CATEGORY,
    RecordKind.GROUP,
    RecordKind.MANAGEMENT_PROMPT,
    RecordKind.PROMPT_RESULT,
)

# MigrationResult counter per kind
_RESULT_FIELDS = {
    RecordKind.PROMPT: "prompts",
    RecordKind.CATEGORY: "categories",
    RecordKind.GROUP: "groups",
    RecordKind.MANAGEMENT_PROMPT: "management_prompts",
    RecordKind.PROMPT_RESULT: "prompt_results",
}

# Fields passed to the target's create path
_CREATE_FIELDS = {
    RecordKind.PROMPT: ("title", "description", "content", "tags", "category", "language", "is_favorite"),
    RecordKind.CATEGORY: ("name", "description"),
    RecordKind.GROUP: ("category_uuid", "name", "description", "display_order", "global_variables"),
    RecordKind.MANAGEMENT_PROMPT: ("group_uuid", "name", "content", "display_order"),
    RecordKind.PROMPT_RESULT: ("prompt_uuid", "content"),
}


class MigrationRunner:
    """Copy all records from ``source`` into ``target``."""

    def __init__(self, source: RecordStore, target: RecordStore):
        self.source = source
        self.target = target

    def _creator(self, kind: RecordKind) -> Callable[..., Awaitable[Any]]:
        return {
            RecordKind.PROMPT: self.target.create_prompt,
            RecordKind.CATEGORY: self.target.create_category,
            RecordKind.GROUP: self.target.create_group,
            RecordKind.MANAGEMENT_PROMPT: self.target.create_management_prompt,
            RecordKind.PROMPT_RESULT: self.target.create_prompt_result,
        }[kind]

    async def run(self) -> MigrationResult:
        """
        Run the migration.

        Returns:
            MigrationResult with per-kind counts and collected per-record errors

        Raises:
            StorageError: If the target cannot be reached
        """
        logger.info(f"Starting migration from {self.source.location} to {self.target.location}")
        try:
            await self.target.ping()
        except StorageError as e:
            raise StorageError(f"Remote connection failed: {e.detail}") from e

        result = MigrationResult()
        for kind in MIGRATION_ORDER:
            migrated, errors = await self._migrate_kind(kind)
            setattr(result, _RESULT_FIELDS[kind], migrated)
            result.errors.extend(errors)
            logger.info(f"Migrated {migrated} {_RESULT_FIELDS[kind]}")

        logger.info(f"Migration finished: {result.total} records, {len(result.errors)} errors")
        return result

    async def _migrate_kind(self, kind: RecordKind) -> Tuple[int, List[str]]:
        records = await self.source.all_records(kind)
        create = self._creator(kind)
        fields = _CREATE_FIELDS[kind]

        migrated = 0
        errors: List[str] = []
        for record in records:
            try:
                if await self.target.get_record(kind, record.uuid) is not None:
                    logger.debug(f"{kind.value} {record.uuid} already present, skipping")
                    continue

                payload: Dict[str, Any] = {field: getattr(record, field) for field in fields}
                await create(payload, record_uuid=record.uuid)
                migrated += 1
            except Exception as e:
                message = f"Failed to migrate {kind.value} {record.uuid}: {e}"
                logger.error(message)
                errors.append(message)

        return migrated, errors
