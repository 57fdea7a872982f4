"""
Integration tests for the request facade.

Tests cover:
- Success and error envelopes
- Error code classification per operation
- Export/import with explicit paths and a file picker
- Migration wiring
- Rendering management prompts with group variables
"""

import json

import pytest

from promptvault.services.request_facade import RequestFacade

pytestmark = pytest.mark.asyncio


class StaticPicker:
    """File picker answering with fixed paths."""

    def __init__(self, export_path=None, import_path=None):
        self.export_path = export_path
        self.import_path = import_path
        self.default_names = []

    async def choose_export_path(self, default_name):
        self.default_names.append(default_name)
        return self.export_path

    async def choose_import_path(self):
        return self.import_path


class TestEnvelopes:
    """Basic dispatch."""

    async def test_create_then_get(self, facade: RequestFacade):
        created = await facade.invoke("prompt:create", {"payload": {"title": "T", "content": "C"}})
        assert created.success is True

        fetched = await facade.invoke("prompt:get", {"uuid": created.data.uuid})
        assert fetched.success is True
        assert fetched.data.title == "T"

    async def test_unknown_operation(self, facade: RequestFacade):
        response = await facade.invoke("prompt:explode", {})
        assert response.success is False
        assert response.error.code == "UNKNOWN_OPERATION"

    async def test_validation_error_code(self, facade: RequestFacade):
        response = await facade.invoke("prompt:create", {"payload": {"title": "", "content": "C"}})
        assert response.error.code == "VALIDATION_ERROR"
        assert response.error.message.startswith("VALIDATION_ERROR:")

    async def test_missing_argument(self, facade: RequestFacade):
        response = await facade.invoke("prompt:update", {"payload": {"title": "x"}})
        assert response.error.code == "VALIDATION_ERROR"
        assert "uuid" in response.error.message

    async def test_get_missing_is_not_found(self, facade: RequestFacade):
        response = await facade.invoke("category:get", {"uuid": "missing"})
        assert response.error.code == "NOT_FOUND"

    async def test_delete_missing_is_not_found(self, facade: RequestFacade):
        response = await facade.invoke("group:delete", {"uuid": "missing"})
        assert response.error.code == "NOT_FOUND"

    async def test_storage_failure_uses_fallback(self, facade: RequestFacade, sqlite_store):
        await sqlite_store.close()
        response = await facade.invoke("prompt:list", {})
        assert response.error.code == "LIST_FAILED"

    async def test_list_and_search_without_params(self, facade: RequestFacade):
        await facade.invoke("prompt:create", {"payload": {"title": "T", "content": "C"}})

        listed = await facade.invoke("prompt:list")
        searched = await facade.invoke("prompt:search", {"params": {"query": ""}})

        assert len(listed.data) == 1
        assert [p.uuid for p in searched.data] == [p.uuid for p in listed.data]

    async def test_operations_are_listed(self, facade: RequestFacade):
        assert "management-prompt:render" in facade.operations
        assert "migrate:to-remote" in facade.operations


class TestManagementOperations:
    """Hierarchy operations through the facade."""

    async def test_group_lifecycle_and_render(self, facade: RequestFacade):
        category = (await facade.invoke("category:create", {"payload": {"name": "C"}})).data
        group = (
            await facade.invoke(
                "group:create",
                {"payload": {"category_uuid": category.uuid, "name": "G", "global_variables": {"who": "team"}}},
            )
        ).data
        prompt = (
            await facade.invoke(
                "management-prompt:create",
                {"payload": {"group_uuid": group.uuid, "name": "P", "content": "Hi {{who}}, see {{when}}"}},
            )
        ).data

        rendered = await facade.invoke("management-prompt:render", {"uuid": prompt.uuid})

        assert rendered.success is True
        assert rendered.data.content == "Hi team, see {{when}}"
        assert rendered.data.unresolved == ["when"]

        listed = await facade.invoke("group:list", {"category_uuid": category.uuid})
        assert [g.uuid for g in listed.data] == [group.uuid]

        reordered = await facade.invoke("group:reorder", {"items": [{"uuid": group.uuid, "display_order": 3}]})
        assert reordered.data is True

    async def test_result_on_missing_prompt(self, facade: RequestFacade):
        response = await facade.invoke("prompt-result:create", {"payload": {"prompt_uuid": "x", "content": "C"}})
        assert response.error.code == "NOT_FOUND"

    async def test_reveal_db(self, facade: RequestFacade, sqlite_store):
        response = await facade.invoke("prompt:reveal-db")
        assert response.data == {"backend": "sqlite", "location": sqlite_store.location}


class TestExportImport:
    """File based operations."""

    async def test_export_without_path_or_picker_is_cancelled(self, facade: RequestFacade):
        response = await facade.invoke("prompt:export", {})
        assert response.error.code == "CANCELLED"

    async def test_picker_cancel(self, sqlite_store):
        picker = StaticPicker()
        facade = RequestFacade(sqlite_store, picker=picker)

        response = await facade.invoke("prompt:import")

        assert response.error.code == "CANCELLED"

    async def test_export_via_picker(self, sqlite_store, tmp_path):
        target = tmp_path / "export.json"
        picker = StaticPicker(export_path=str(target))
        facade = RequestFacade(sqlite_store, picker=picker)
        await facade.invoke("prompt:create", {"payload": {"title": "T", "content": "C"}})

        response = await facade.invoke("prompt:export")

        assert response.data == {"path": str(target), "count": 1}
        assert picker.default_names[0].startswith("prompts-export-")
        assert json.loads(target.read_text(encoding="utf-8"))[0]["title"] == "T"

    async def test_import_invalid_file(self, facade: RequestFacade, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json", encoding="utf-8")

        response = await facade.invoke("prompt:import", {"path": str(path)})

        assert response.error.code == "INVALID_FORMAT"

    async def test_import_missing_file(self, facade: RequestFacade, tmp_path):
        response = await facade.invoke("prompt:import", {"path": str(tmp_path / "nope.json")})
        assert response.error.code == "IMPORT_FAILED"

    async def test_import_counts(self, facade: RequestFacade, tmp_path):
        path = tmp_path / "in.json"
        path.write_text(
            json.dumps(
                [
                    {"uuid": "33333333-3333-4333-8333-333333333333", "title": "A", "content": "B"},
                    {"title": "no uuid", "content": "B"},
                ]
            ),
            encoding="utf-8",
        )

        response = await facade.invoke("prompt:import", {"path": str(path)})

        assert response.success is True
        assert response.data.model_dump() == {"imported": 1, "updated": 0, "skipped": 1}


class TestMigrateOperation:
    """migrate:to-remote wiring."""

    async def test_not_configured(self, facade: RequestFacade):
        response = await facade.invoke("migrate:to-remote")
        assert response.error.code == "MIGRATION_FAILED"

    async def test_runs_and_closes_target(self, sqlite_store, remote_store):
        closed = []
        original_close = remote_store.close

        async def tracking_close():
            closed.append(True)
            await original_close()

        remote_store.close = tracking_close
        facade = RequestFacade(sqlite_store, migration_target_factory=lambda: remote_store)
        await facade.invoke("category:create", {"payload": {"name": "C"}})

        response = await facade.invoke("migrate:to-remote")

        assert response.success is True
        assert response.data.categories == 1
        assert closed == [True]
