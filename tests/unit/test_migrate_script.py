"""
Unit tests for the promptvault-migrate command line entry point.
"""

from promptvault.scripts.migrate_to_remote import main


class TestMigrateScript:
    """Test main()."""

    def test_missing_database_exits_with_error(self, tmp_path):
        assert main(["--database", str(tmp_path / "missing.db")]) == 1
