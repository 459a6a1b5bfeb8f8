"""Test SQLite backups and retention."""

from __future__ import annotations

import os
import sqlite3
import time

import pytest

from lastupdate.db import get_sqlite_path
from lastupdate.services.backup import cleanup_backups, create_backup, database_report, run_backup


def _touch(path, age_days: float) -> None:
    path.write_bytes(b"backup")
    mtime = time.time() - age_days * 86400
    os.utime(path, (mtime, mtime))


def test_create_backup_copies_database(tmp_path):
    source = tmp_path / "source.sqlite"
    conn = sqlite3.connect(source)
    conn.execute("CREATE TABLE t (x INTEGER)")
    conn.execute("INSERT INTO t VALUES (42)")
    conn.commit()
    conn.close()

    result = create_backup(source, tmp_path / "backups")
    assert result.path.name.startswith("backup-")
    assert result.size_bytes > 0

    copy = sqlite3.connect(result.path)
    assert copy.execute("SELECT x FROM t").fetchone() == (42,)
    copy.close()


def test_create_backup_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        create_backup(tmp_path / "missing.sqlite", tmp_path / "backups")


def test_cleanup_by_age_and_count(tmp_path):
    for index, age in enumerate([20, 3, 2, 1, 0]):
        _touch(tmp_path / f"backup-{index}.sqlite", age)
    (tmp_path / "notes.txt").write_text("keep me")

    removed = cleanup_backups(tmp_path, max_files=3, retention_days=14)
    assert sorted(removed) == ["backup-0.sqlite", "backup-1.sqlite"]
    assert sorted(p.name for p in tmp_path.iterdir()) == [
        "backup-2.sqlite",
        "backup-3.sqlite",
        "backup-4.sqlite",
        "notes.txt",
    ]


def test_cleanup_limits_can_be_disabled(tmp_path):
    for index in range(3):
        _touch(tmp_path / f"backup-{index}.sqlite", 100)
    assert cleanup_backups(tmp_path, max_files=0, retention_days=0) == []


def test_run_backup_of_application_database(tmp_path):
    result = run_backup(backup_dir=tmp_path)
    assert result is not None
    assert result.path.parent == tmp_path

    report = database_report(backup_dir=tmp_path)
    assert report["database"] == str(get_sqlite_path())
    assert "members" in report["tables"]
    assert report["latest_backup"]["file"] == result.path.name
