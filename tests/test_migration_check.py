"""Tests for the startup migration step."""
import subprocess

import pytest

from forge_server import migration_check
from forge_server.config import settings


@pytest.fixture
def file_database(monkeypatch):
    monkeypatch.setattr(settings, "auto_migrate", True)
    monkeypatch.setattr(settings, "require_migrations", True)
    monkeypatch.setattr(settings, "database_url", "sqlite+aiosqlite:///./data/forge.db")


def _fake_run(returncode=0, stderr="", calls=None):
    def run(args, **kwargs):
        if calls is not None:
            calls.append((args, kwargs))
        return subprocess.CompletedProcess(args, returncode, stdout="", stderr=stderr)

    return run


def test_skipped_when_auto_migrate_off(monkeypatch, file_database):
    monkeypatch.setattr(settings, "auto_migrate", False)
    calls = []
    monkeypatch.setattr(migration_check.subprocess, "run", _fake_run(calls=calls))
    migration_check.ensure_migrations()
    assert calls == []


def test_skipped_for_in_memory_sqlite(monkeypatch, file_database):
    monkeypatch.setattr(settings, "database_url", "sqlite+aiosqlite:///:memory:")
    calls = []
    monkeypatch.setattr(migration_check.subprocess, "run", _fake_run(calls=calls))
    migration_check.ensure_migrations()
    assert calls == []


def test_runs_upgrade_head_from_repo_root(monkeypatch, file_database):
    calls = []
    stderr = "INFO  [alembic.runtime.migration] Running upgrade  -> a0f1c2d3e4b5, initial forge schema\n"
    monkeypatch.setattr(migration_check.subprocess, "run", _fake_run(stderr=stderr, calls=calls))
    migration_check.ensure_migrations()

    args, kwargs = calls[0]
    assert args == ["alembic", "upgrade", "head"]
    assert kwargs["cwd"] == migration_check.get_alembic_dir()


def test_failure_exits_when_required(monkeypatch, file_database):
    monkeypatch.setattr(migration_check.subprocess, "run", _fake_run(returncode=1, stderr="boom"))
    with pytest.raises(SystemExit):
        migration_check.ensure_migrations()


def test_failure_tolerated_when_not_required(monkeypatch, file_database):
    monkeypatch.setattr(settings, "require_migrations", False)
    monkeypatch.setattr(migration_check.subprocess, "run", _fake_run(returncode=1, stderr="boom"))
    migration_check.ensure_migrations()


def test_missing_alembic_exits_when_required(monkeypatch, file_database):
    def missing(args, **kwargs):
        raise FileNotFoundError("alembic")

    monkeypatch.setattr(migration_check.subprocess, "run", missing)
    with pytest.raises(SystemExit):
        migration_check.ensure_migrations()
