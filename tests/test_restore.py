"""Tests for restoring token files from backups."""

import json
import tempfile
from pathlib import Path

import pytest

from dtm.core import GovernanceCore
from dtm.errors import NotFoundError, RequestValidationFailed
from dtm.guard.models import BackupAction, TokenWrite

FILE_A = "/tokens/global/a.json"
FILE_B = "/tokens/global/b.json"


def _seed(root: Path, url_path: str, value: str) -> Path:
    path = root / url_path.lstrip("/")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"color": {"x": {"$value": value, "$type": "color"}}}), encoding="utf-8")
    return path


def _update(core: GovernanceCore, url_path: str, value: str) -> str:
    result = core.guard.save_token(
        TokenWrite(url_path, "color.x", BackupAction.UPDATE, value={"$value": value, "$type": "color"})
    )
    return result.backup_id


def test_restore_by_id_reproduces_original_bytes():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _seed(root, FILE_A, "#444444")
        original = path.read_bytes()
        core = GovernanceCore.for_project(root)

        backup_id = _update(core, FILE_A, "#555555")
        assert path.read_bytes() != original

        result = core.restore.restore_by_id(backup_id)

        assert result.success
        assert result.restored_path == FILE_A
        assert result.backup_id == backup_id
        assert path.read_bytes() == original


def test_restore_by_id_is_idempotent():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _seed(root, FILE_A, "#444444")
        original = path.read_bytes()
        core = GovernanceCore.for_project(root)
        backup_id = _update(core, FILE_A, "#555555")

        core.restore.restore_by_id(backup_id)
        core.restore.restore_by_id(backup_id)

        assert path.read_bytes() == original


def test_restore_keeps_history_and_records_nothing_new():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _seed(root, FILE_A, "#444444")
        core = GovernanceCore.for_project(root)
        backup_id = _update(core, FILE_A, "#555555")

        core.restore.restore_by_id(backup_id)

        assert core.backups.count() == 1
        assert core.backups.find_by_id(backup_id) is not None


def test_restore_unknown_id():
    with tempfile.TemporaryDirectory() as tmpdir:
        core = GovernanceCore.for_project(tmpdir)
        with pytest.raises(NotFoundError) as exc_info:
            core.restore.restore_by_id("does-not-exist")
        assert exc_info.value.code == "BACKUP_NOT_FOUND"

        with pytest.raises(RequestValidationFailed):
            core.restore.restore_by_id("")


def test_restore_latest_for_target_ignores_newer_unrelated_backups():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path_a = _seed(root, FILE_A, "#666666")
        path_b = _seed(root, FILE_B, "#000000")
        core = GovernanceCore.for_project(root)

        _update(core, FILE_A, "#777777")
        _update(core, FILE_B, "#ffffff")

        result = core.restore.restore_latest(FILE_A)

        assert result.restored_path == FILE_A
        assert json.loads(path_a.read_text())["color"]["x"]["$value"] == "#666666"
        assert json.loads(path_b.read_text())["color"]["x"]["$value"] == "#ffffff"


def test_restore_latest_without_target_uses_newest_entry():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _seed(root, FILE_A, "#666666")
        path_b = _seed(root, FILE_B, "#000000")
        core = GovernanceCore.for_project(root)
        _update(core, FILE_A, "#777777")
        newest = _update(core, FILE_B, "#ffffff")

        result = core.restore.restore_latest()

        assert result.backup_id == newest
        assert json.loads(path_b.read_text())["color"]["x"]["$value"] == "#000000"


def test_restore_latest_nothing_to_restore():
    with tempfile.TemporaryDirectory() as tmpdir:
        core = GovernanceCore.for_project(tmpdir)
        with pytest.raises(NotFoundError) as exc_info:
            core.restore.restore_latest()
        assert exc_info.value.code == "NO_BACKUP_FOUND"

        with pytest.raises(NotFoundError):
            core.restore.restore_latest(FILE_A)


def test_restore_absent_snapshot_deletes_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        core = GovernanceCore.for_project(root)
        backup_id = _update(core, "/tokens/global/fresh.json", "#123123")
        created = root / "tokens/global/fresh.json"
        assert created.exists()

        result = core.restore.restore_by_id(backup_id)

        assert result.removed
        assert not created.exists()
        # Repeating is harmless
        assert not core.restore.restore_by_id(backup_id).removed


def test_restore_missing_snapshot_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _seed(root, FILE_A, "#444444")
        core = GovernanceCore.for_project(root)
        backup_id = _update(core, FILE_A, "#555555")
        core.backups.snapshot_file(core.backups.find_by_id(backup_id)).unlink()

        with pytest.raises(NotFoundError) as exc_info:
            core.restore.restore_by_id(backup_id)
        assert exc_info.value.code == "BACKUP_FILE_MISSING"
