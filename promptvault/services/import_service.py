"""
Prompt import (merge by uuid) and export to JSON files.

Import rules, per record:
- records without uuid, title or content are skipped
- unknown uuids are inserted with their own uuid and timestamps
- known uuids are overwritten only when the incoming ``updated_at`` is
  strictly newer than the stored one (last writer wins on client clocks)
- a failing record is logged and counted as skipped; the batch goes on
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from ..core.exceptions import InvalidFormatError
from ..schemas.prompt import ImportResult, PromptResponse
from ..utils.timestamps import now_iso, parse_timestamp, utc_now
from .record_store import RecordStore

logger = logging.getLogger(__name__)

# Fields replaced when an incoming record wins the merge
OVERWRITE_FIELDS = ("title", "description", "content", "tags", "category", "language", "is_favorite")


def _has_text(item: Dict[str, Any], field: str) -> bool:
    value = item.get(field)
    return isinstance(value, str) and bool(value.strip())


class ImportReconciler:
    """Merge a list of exported prompts into a record store."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def import_prompts(self, items: Iterable[Any]) -> ImportResult:
        """
        Merge ``items`` into the store.

        Args:
            items: Prompt objects as found in an export file

        Returns:
            ImportResult with imported/updated/skipped counts
        """
        result = ImportResult()

        async with self.store.batch():
            for item in items:
                if not isinstance(item, dict) or not all(_has_text(item, f) for f in ("uuid", "title", "content")):
                    result.skipped += 1
                    continue

                try:
                    outcome = await self._merge(item)
                except Exception as e:
                    logger.warning(f"Skipping prompt {item.get('uuid')} during import: {e}")
                    result.skipped += 1
                    continue

                if outcome == "imported":
                    result.imported += 1
                elif outcome == "updated":
                    result.updated += 1
                else:
                    result.skipped += 1

        logger.info(
            f"Import finished: {result.imported} imported, {result.updated} updated, {result.skipped} skipped"
        )
        return result

    async def _merge(self, item: Dict[str, Any]) -> str:
        uuid = item["uuid"].strip()
        existing = await self.store.get_prompt(uuid)

        if existing is None:
            now = now_iso()
            record = PromptResponse(
                uuid=uuid,
                title=item["title"],
                description=item.get("description") or None,
                content=item["content"],
                tags=item.get("tags") or None,
                category=item.get("category") or None,
                language=item.get("language") or None,
                is_favorite=item.get("is_favorite"),
                created_at=item.get("created_at") or now,
                updated_at=item.get("updated_at") or now,
            )
            await self.store.insert_prompt_record(record)
            return "imported"

        incoming = item.get("updated_at")
        incoming_at = parse_timestamp(incoming) if incoming else utc_now()
        if incoming_at <= existing.updated_at:
            return "skipped"

        await self.store.update_prompt(uuid, {field: item.get(field) for field in OVERWRITE_FIELDS})
        return "updated"


def default_export_filename() -> str:
    """``prompts-export-YYYY-MM-DD.json`` for today's date."""
    return f"prompts-export-{utc_now().date().isoformat()}.json"


async def export_to_file(store: RecordStore, path: Union[str, Path]) -> int:
    """
    Write every non-deleted prompt to ``path`` as a JSON array.

    Returns:
        Number of prompts written
    """
    prompts = await store.export_prompts()
    payload = [prompt.model_dump(mode="json") for prompt in prompts]

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info(f"Exported {len(payload)} prompts to {target}")
    return len(payload)


def read_import_file(path: Union[str, Path]) -> List[Any]:
    """
    Parse an export file.

    Raises:
        InvalidFormatError: If the file is not JSON or its root is not an array
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidFormatError(f"Import file is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise InvalidFormatError("Import file must contain a JSON array of prompts")
    return data
