"""
Integration tests for the import reconciler and export files.
"""

import json

import pytest

from promptvault.core.exceptions import InvalidFormatError
from promptvault.services.import_service import (
    ImportReconciler,
    default_export_filename,
    export_to_file,
    read_import_file,
)


UUID_A = "11111111-1111-4111-8111-111111111111"
UUID_B = "22222222-2222-4222-8222-222222222222"


def _item(uuid=UUID_A, **overrides):
    item = {
        "uuid": uuid,
        "title": "Imported",
        "description": "From file",
        "content": "Body",
        "tags": "imported",
        "category": "misc",
        "language": "en",
        "is_favorite": 1,
        "created_at": "2024-01-01T00:00:00.000Z",
        "updated_at": "2024-01-02T00:00:00.000Z",
    }
    item.update(overrides)
    return item


class TestImportReconciler:
    """Test ImportReconciler.import_prompts()."""

    async def test_new_records_are_inserted_with_their_identity(self, store):
        result = await ImportReconciler(store).import_prompts([_item()])

        assert (result.imported, result.updated, result.skipped) == (1, 0, 0)
        prompt = await store.get_prompt(UUID_A)
        assert prompt.title == "Imported"
        assert prompt.is_favorite is True
        assert prompt.created_at.isoformat().startswith("2024-01-01T00:00:00")
        assert prompt.updated_at.isoformat().startswith("2024-01-02T00:00:00")

    @pytest.mark.parametrize("flag", ["false", 0, False, None])
    async def test_favorite_flag_is_parsed_the_same_on_insert_and_overwrite(self, store, flag):
        reconciler = ImportReconciler(store)
        await reconciler.import_prompts([_item(is_favorite=flag), _item(uuid=UUID_B, is_favorite=True)])
        await reconciler.import_prompts([_item(uuid=UUID_B, is_favorite=flag, updated_at="2999-01-01T00:00:00Z")])

        assert (await store.get_prompt(UUID_A)).is_favorite is False
        assert (await store.get_prompt(UUID_B)).is_favorite is False

    async def test_string_true_flag_is_favorite(self, store):
        await ImportReconciler(store).import_prompts([_item(is_favorite="true")])
        assert (await store.get_prompt(UUID_A)).is_favorite is True

    async def test_invalid_records_are_skipped(self, store):
        items = [
            _item(uuid=""),
            _item(uuid=UUID_B, title="   "),
            {"uuid": UUID_B, "title": "No content"},
            "not an object",
        ]
        result = await ImportReconciler(store).import_prompts(items)
        assert (result.imported, result.updated, result.skipped) == (0, 0, 4)
        assert await store.list_prompts() == []

    async def test_reimport_is_idempotent(self, store):
        reconciler = ImportReconciler(store)
        await reconciler.import_prompts([_item(), _item(uuid=UUID_B)])

        result = await reconciler.import_prompts([_item(), _item(uuid=UUID_B)])

        assert (result.imported, result.updated, result.skipped) == (0, 0, 2)
        assert len(await store.list_prompts()) == 2

    async def test_newer_record_overwrites(self, store):
        reconciler = ImportReconciler(store)
        await reconciler.import_prompts([_item()])

        result = await reconciler.import_prompts(
            [_item(title="Changed", description=None, updated_at="2999-01-01T00:00:00Z")]
        )

        assert result.updated == 1
        prompt = await store.get_prompt(UUID_A)
        assert prompt.title == "Changed"
        # Full-field overwrite: absent values clear the stored ones
        assert prompt.description is None

    async def test_older_record_is_skipped(self, store):
        created = await store.create_prompt({"title": "Local", "content": "Local body"})

        result = await ImportReconciler(store).import_prompts(
            [_item(uuid=created.uuid, title="Stale", updated_at="2000-01-01T00:00:00Z")]
        )

        assert (result.updated, result.skipped) == (0, 1)
        assert (await store.get_prompt(created.uuid)).title == "Local"

    async def test_missing_updated_at_counts_as_now(self, store):
        created = await store.create_prompt({"title": "Local", "content": "Local body"})
        item = _item(uuid=created.uuid, title="Remote copy")
        del item["updated_at"]

        result = await ImportReconciler(store).import_prompts([item])

        assert result.updated == 1
        assert (await store.get_prompt(created.uuid)).title == "Remote copy"

    async def test_failing_record_does_not_abort_batch(self, store):
        items = [_item(updated_at="not a date"), _item(uuid=UUID_B)]
        result = await ImportReconciler(store).import_prompts(items)

        assert (result.imported, result.skipped) == (1, 1)
        assert await store.get_prompt(UUID_A) is None
        assert await store.get_prompt(UUID_B) is not None


class TestExportFiles:
    """Test export_to_file() and read_import_file()."""

    async def test_export_then_import_into_empty_store(self, sqlite_store, remote_store, tmp_path):
        await sqlite_store.create_prompt({"title": "One", "content": "C1", "tags": "a"})
        await sqlite_store.create_prompt({"title": "Two", "content": "C2"})
        path = tmp_path / "out" / "prompts.json"

        count = await export_to_file(sqlite_store, path)

        assert count == 2
        raw = path.read_text(encoding="utf-8")
        assert raw.startswith("[\n  {")
        items = read_import_file(path)
        assert [item["title"] for item in items] == ["One", "Two"]

        result = await ImportReconciler(remote_store).import_prompts(items)
        assert result.imported == 2
        again = await ImportReconciler(remote_store).import_prompts(items)
        assert again.skipped == 2

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(InvalidFormatError):
            read_import_file(path)

    def test_non_array_root(self, tmp_path):
        path = tmp_path / "object.json"
        path.write_text(json.dumps({"prompts": []}), encoding="utf-8")
        with pytest.raises(InvalidFormatError):
            read_import_file(path)

    def test_default_export_filename(self):
        name = default_export_filename()
        assert name.startswith("prompts-export-")
        assert name.endswith(".json")
        assert len(name) == len("prompts-export-YYYY-MM-DD.json")
