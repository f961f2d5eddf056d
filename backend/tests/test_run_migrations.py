"""Tests for the migration runner."""

from unittest.mock import MagicMock

import pytest

import run_migrations
from run_migrations import MIGRATIONS_DIR, Migration, apply, discover_migrations, plan


@pytest.fixture
def migrations_dir(tmp_path):
    (tmp_path / "002_second.sql").write_text("SELECT 2;")
    (tmp_path / "001_first.sql").write_text("SELECT 1;")
    (tmp_path / "notes.txt").write_text("not a migration")
    return tmp_path


class TestDiscoverMigrations:

    def test_sorted_sql_files_only(self, migrations_dir):
        names = [m.name for m in discover_migrations(migrations_dir)]
        assert names == ["001_first.sql", "002_second.sql"]

    def test_checksum_tracks_content(self, migrations_dir):
        before = discover_migrations(migrations_dir)[0].checksum
        (migrations_dir / "001_first.sql").write_text("SELECT 'edited';")
        after = discover_migrations(migrations_dir)[0].checksum
        assert before != after
        assert len(after) == 16

    def test_ledger_schema_is_shipped(self):
        names = [m.name for m in discover_migrations(MIGRATIONS_DIR)]
        assert "001_credit_ledger.sql" in names


class TestPlan:

    def test_everything_pending(self, migrations_dir):
        pending, changed = plan(discover_migrations(migrations_dir), {})
        assert [m.name for m in pending] == ["001_first.sql", "002_second.sql"]
        assert changed == []

    def test_applied_and_changed(self, migrations_dir):
        migrations = discover_migrations(migrations_dir)
        applied = {"001_first.sql": "stale-checksum"}

        pending, changed = plan(migrations, applied)

        assert [m.name for m in pending] == ["002_second.sql"]
        assert changed == ["001_first.sql"]

    def test_up_to_date(self, migrations_dir):
        migrations = discover_migrations(migrations_dir)
        pending, changed = plan(migrations, {m.name: m.checksum for m in migrations})
        assert pending == []
        assert changed == []


class TestApply:

    def test_runs_and_records(self, migrations_dir):
        migration = discover_migrations(migrations_dir)[0]
        conn = MagicMock()
        cursor = conn.cursor.return_value.__enter__.return_value

        apply(conn, migration)

        assert cursor.execute.call_args_list[0].args == ("SELECT 1;",)
        assert cursor.execute.call_args_list[1].args[1] == ("001_first.sql", migration.checksum)
        conn.commit.assert_called_once()

    def test_rolls_back_on_failure(self, tmp_path):
        path = tmp_path / "001_broken.sql"
        path.write_text("NOT SQL")
        conn = MagicMock()
        conn.cursor.return_value.__enter__.return_value.execute.side_effect = (
            run_migrations.psycopg2.Error("syntax error")
        )

        with pytest.raises(run_migrations.psycopg2.Error):
            apply(conn, Migration(name=path.name, path=path, checksum="x"))

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()


class TestConnect:

    def test_requires_database_url(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_DB_URL", "")
        with pytest.raises(SystemExit):
            run_migrations.connect()
