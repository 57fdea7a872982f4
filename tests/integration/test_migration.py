"""
Integration tests for the embedded to remote migration.
"""

import pytest

from promptvault.core.exceptions import StorageError
from promptvault.services.migration_service import MigrationRunner

pytestmark = pytest.mark.asyncio


async def _seed(store):
    prompt = await store.create_prompt({"title": "Catalog prompt", "content": "C", "tags": "x"})
    category = await store.create_category({"name": "Marketing"})
    group = await store.create_group(
        {"category_uuid": category.uuid, "name": "Emails", "display_order": 4, "global_variables": {"a": "b"}}
    )
    management_prompt = await store.create_management_prompt(
        {"group_uuid": group.uuid, "name": "Launch", "content": "Announce {{a}}"}
    )
    result = await store.create_prompt_result({"prompt_uuid": management_prompt.uuid, "content": "Done"})
    return prompt, category, group, management_prompt, result


class TestMigrationRunner:
    """Test MigrationRunner.run()."""

    async def test_migrates_all_kinds_preserving_identity(self, sqlite_store, remote_store):
        prompt, category, group, management_prompt, result = await _seed(sqlite_store)

        report = await MigrationRunner(sqlite_store, remote_store).run()

        assert (
            report.prompts,
            report.categories,
            report.groups,
            report.management_prompts,
            report.prompt_results,
        ) == (1, 1, 1, 1, 1)
        assert report.errors == []

        remote_group = await remote_store.get_group(group.uuid)
        assert remote_group.category_uuid == category.uuid
        assert remote_group.display_order == 4
        assert remote_group.global_variables == {"a": "b"}
        assert (await remote_store.get_prompt(prompt.uuid)).tags == "x"
        assert (await remote_store.get_management_prompt(management_prompt.uuid)).group_uuid == group.uuid
        assert (await remote_store.get_prompt_result(result.uuid)).prompt_uuid == management_prompt.uuid

    async def test_rerun_is_idempotent(self, sqlite_store, remote_store, fake_remote):
        await _seed(sqlite_store)
        await MigrationRunner(sqlite_store, remote_store).run()

        report = await MigrationRunner(sqlite_store, remote_store).run()

        assert report.total == 0
        assert report.errors == []
        assert len(fake_remote.tables["groups"]) == 1

    async def test_deleted_prompts_are_not_migrated(self, sqlite_store, remote_store):
        prompt = await sqlite_store.create_prompt({"title": "Gone", "content": "C"})
        await sqlite_store.delete_prompt(prompt.uuid)

        report = await MigrationRunner(sqlite_store, remote_store).run()

        assert report.prompts == 0

    async def test_record_errors_are_collected(self, sqlite_store, remote_store, fake_remote):
        await _seed(sqlite_store)
        fake_remote.fail_when = lambda request: request.method == "POST" and request.url.path.endswith("/categories")

        report = await MigrationRunner(sqlite_store, remote_store).run()

        assert report.prompts == 1
        assert report.categories == 0
        # Children cannot be created without their parent
        assert report.groups == 0
        assert report.management_prompts == 0
        assert report.prompt_results == 0
        assert len(report.errors) == 4
        assert report.errors[0].startswith("Failed to migrate category")

    async def test_unreachable_target_fails(self, sqlite_store, remote_store, fake_remote):
        fake_remote.fail_when = lambda request: True

        with pytest.raises(StorageError) as exc_info:
            await MigrationRunner(sqlite_store, remote_store).run()

        assert "Remote connection failed" in str(exc_info.value)
