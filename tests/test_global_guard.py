"""Tests for the global guard policy and guarded writes."""

import json
import tempfile
import threading
from pathlib import Path

import pytest

from dtm.core import GovernanceCore
from dtm.errors import PathTraversalError, PolicyDenied, RequestValidationFailed
from dtm.guard.models import BackupAction, TokenWrite, TuningEdit

GLOBAL_FILE = "/tokens/global/base/colors.json"
CLIENT_FILE = "/tokens/clients/acme/colors.json"


def _seed(root: Path, url_path: str, value: str) -> Path:
    path = root / url_path.lstrip("/")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps({"color": {"guard": {"test": {"$value": value, "$type": "color"}}}}, indent=2),
        encoding="utf-8",
    )
    return path


def _value(path: Path, token_path: str = "color.guard.test"):
    node = json.loads(path.read_text(encoding="utf-8"))
    for key in token_path.split("."):
        node = node[key]
    return node["$value"]


# --- Policy ---


def test_authorize_denies_unconfirmed_global_delete():
    with tempfile.TemporaryDirectory() as tmpdir:
        core = GovernanceCore.for_project(tmpdir)
        decision = core.guard.authorize(
            TokenWrite(target_path=GLOBAL_FILE, token_path="color.guard.test", action=BackupAction.DELETE)
        )
        assert not decision.allowed
        assert decision.code == "GLOBAL_DELETE_PROTECTED"
        assert "color.guard.test" in decision.reason


def test_authorize_allows_confirmed_delete_and_updates():
    with tempfile.TemporaryDirectory() as tmpdir:
        core = GovernanceCore.for_project(tmpdir)
        confirmed = TokenWrite(GLOBAL_FILE, "color.guard.test", BackupAction.DELETE, confirm=True)
        update = TokenWrite(GLOBAL_FILE, "color.guard.test", BackupAction.UPDATE, value={"$value": "#000"})
        client_delete = TokenWrite(CLIENT_FILE, "color.guard.test", BackupAction.DELETE)

        assert core.guard.authorize(confirmed).allowed
        assert core.guard.authorize(update).allowed
        decision = core.guard.authorize(client_delete)
        assert decision.allowed
        assert not decision.protected


# --- save_token ---


def test_denied_delete_leaves_file_byte_identical():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _seed(root, GLOBAL_FILE, "#111111")
        before = path.read_bytes()
        core = GovernanceCore.for_project(root)

        with pytest.raises(PolicyDenied) as exc_info:
            core.guard.save_token(TokenWrite(GLOBAL_FILE, "color.guard.test", BackupAction.DELETE))

        assert exc_info.value.code == "GLOBAL_DELETE_PROTECTED"
        assert exc_info.value.status_code == 403
        assert path.read_bytes() == before
        assert core.backups.count() == 0


def test_update_records_backup_of_previous_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _seed(root, GLOBAL_FILE, "#222222")
        before = path.read_bytes()
        core = GovernanceCore.for_project(root)

        result = core.guard.save_token(
            TokenWrite(
                GLOBAL_FILE,
                "color.guard.test",
                BackupAction.UPDATE,
                value={"$value": "#333333", "$type": "color"},
            )
        )

        assert result.path == GLOBAL_FILE
        assert result.backup_id
        assert _value(path) == "#333333"
        entry = core.backups.find_by_id(result.backup_id)
        assert entry.source_path == GLOBAL_FILE
        assert entry.action == BackupAction.UPDATE
        assert entry.token_path == "color.guard.test"
        assert core.backups.snapshot_file(entry).read_bytes() == before


def test_create_in_new_global_file_records_absent_snapshot():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        core = GovernanceCore.for_project(root)

        result = core.guard.save_token(
            TokenWrite("/tokens/global/new.json", "size.sm", BackupAction.CREATE, value={"$value": "4px"})
        )

        entry = core.backups.find_by_id(result.backup_id)
        assert not entry.existed
        assert _value(root / "tokens/global/new.json", "size.sm") == "4px"


def test_confirmed_delete_removes_token():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _seed(root, GLOBAL_FILE, "#111111")
        core = GovernanceCore.for_project(root)

        result = core.guard.save_token(
            TokenWrite(GLOBAL_FILE, "color.guard.test", BackupAction.DELETE, confirm=True)
        )

        assert result.backup_id
        assert json.loads(path.read_text()) == {"color": {"guard": {}}}


def test_client_tier_write_has_no_backup():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _seed(root, CLIENT_FILE, "#abcdef")
        core = GovernanceCore.for_project(root)

        deleted = core.guard.save_token(TokenWrite(CLIENT_FILE, "color.guard.test", BackupAction.DELETE))

        assert deleted.backup_id is None
        assert core.backups.count() == 0
        assert json.loads(path.read_text()) == {"color": {"guard": {}}}


def test_save_token_rejects_traversal():
    with tempfile.TemporaryDirectory() as tmpdir:
        core = GovernanceCore.for_project(tmpdir)
        with pytest.raises(PathTraversalError):
            core.guard.save_token(
                TokenWrite("/../../etc/colors.json", "color.a", BackupAction.UPDATE, value={"$value": "#fff"})
            )


def test_save_token_missing_fields():
    with tempfile.TemporaryDirectory() as tmpdir:
        core = GovernanceCore.for_project(tmpdir)
        with pytest.raises(RequestValidationFailed) as exc_info:
            core.guard.save_token(TokenWrite("", "color.a", BackupAction.UPDATE, value={}))
        assert exc_info.value.code == "MISSING_PATH"

        with pytest.raises(RequestValidationFailed):
            core.guard.save_token(TokenWrite(GLOBAL_FILE, "color.a", BackupAction.UPDATE))

        with pytest.raises(RequestValidationFailed):
            core.guard.save_token(TokenWrite(GLOBAL_FILE, "color..a", BackupAction.UPDATE, value={}))
        assert core.backups.count() == 0


def test_concurrent_updates_each_get_a_backup():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _seed(root, GLOBAL_FILE, "#000000")
        core = GovernanceCore.for_project(root)
        values = [f"#00000{i}" for i in range(1, 9)]

        def write(value):
            core.guard.save_token(
                TokenWrite(GLOBAL_FILE, "color.guard.test", BackupAction.UPDATE, value={"$value": value})
            )

        threads = [threading.Thread(target=write, args=(v,)) for v in values]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert core.backups.count() == len(values)
        # Every snapshot is a complete document
        snapshots = {_value(core.backups.snapshot_file(e)) for e in core.backups.list(limit=100)}
        assert "#000000" in snapshots
        assert _value(path) in values


# --- save_tuning ---


def test_tuning_updates_value_and_keeps_type():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _seed(root, GLOBAL_FILE, "#111111")
        core = GovernanceCore.for_project(root)

        results = core.guard.save_tuning(
            [
                TuningEdit(file=GLOBAL_FILE, token_path="color.guard.test", value="#999999", type="dimension"),
                TuningEdit(file=GLOBAL_FILE, token_path="color.guard.new", value="#123456"),
            ]
        )

        assert len(results) == 1
        assert results[0].saved == 2
        assert results[0].backup_id
        assert core.backups.count() == 1
        data = json.loads(path.read_text())
        assert data["color"]["guard"]["test"] == {"$value": "#999999", "$type": "color"}
        assert data["color"]["guard"]["new"] == {"$value": "#123456", "$type": "color"}


def test_tuning_skips_unsafe_and_incomplete_entries():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _seed(root, CLIENT_FILE, "#111111")
        core = GovernanceCore.for_project(root)

        results = core.guard.save_tuning(
            [
                TuningEdit(file="/../escape.json", token_path="a.b", value=1),
                TuningEdit(file="", token_path="a.b", value=1),
                TuningEdit(file=CLIENT_FILE, token_path="spacing.md", value="12px", type="dimension"),
            ]
        )

        assert [r.file for r in results] == [CLIENT_FILE]
        assert results[0].backup_id is None
        assert not (root.parent / "escape.json").exists()


def test_tuning_empty_batch_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        core = GovernanceCore.for_project(tmpdir)
        with pytest.raises(RequestValidationFailed) as exc_info:
            core.guard.save_tuning([])
        assert exc_info.value.code == "BAD_ENTRIES"


# --- Write targets ---


def test_backup_files_cannot_be_written_as_tokens():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _seed(root, GLOBAL_FILE, "#111111")
        core = GovernanceCore.for_project(root)
        backup_id = core.guard.save_token(
            TokenWrite(GLOBAL_FILE, "color.guard.test", BackupAction.UPDATE, value={"$value": "#333333"})
        ).backup_id
        entry = core.backups.find_by_id(backup_id)
        index_before = core.backups.index_path.read_bytes()

        for target in (entry.backup_path, "/.memory/global-backups/index.json"):
            with pytest.raises(PathTraversalError):
                core.guard.save_token(
                    TokenWrite(target, "color.guard.test", BackupAction.UPDATE, value={"$value": "#EVIL00"})
                )

        assert core.backups.index_path.read_bytes() == index_before
        core.restore.restore_by_id(backup_id)
        assert _value(path) == "#111111"


def test_manifest_cannot_be_written_as_tokens():
    with tempfile.TemporaryDirectory() as tmpdir:
        core = GovernanceCore.for_project(tmpdir)
        with pytest.raises(PathTraversalError) as exc_info:
            core.guard.save_token(
                TokenWrite("/tokens/manifest.json", "projects.x", BackupAction.CREATE, value={"$value": 1})
            )
        assert exc_info.value.code == "RESERVED_PATH"
        assert exc_info.value.status_code == 403
        assert not core.config.manifest_path.exists()


def test_files_outside_token_dir_rejected():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        core = GovernanceCore.for_project(root)
        with pytest.raises(PathTraversalError) as exc_info:
            core.guard.save_token(TokenWrite("/package.json", "a.b", BackupAction.CREATE, value={"$value": 1}))
        assert exc_info.value.code == "PATH_TRAVERSAL"
        assert not (root / "package.json").exists()


def test_tuning_skips_reserved_files():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _seed(root, GLOBAL_FILE, "#111111")
        core = GovernanceCore.for_project(root)
        entry = core.backups.record(GLOBAL_FILE, BackupAction.UPDATE)
        snapshot_before = core.backups.snapshot_file(entry).read_bytes()

        results = core.guard.save_tuning(
            [
                TuningEdit(file=entry.backup_path, token_path="color.guard.test", value="#EVIL00"),
                TuningEdit(file="/tokens/manifest.json", token_path="a.b", value="x"),
            ]
        )

        assert results == []
        assert core.backups.snapshot_file(entry).read_bytes() == snapshot_before
        assert core.backups.count() == 1
        assert not core.config.manifest_path.exists()


def test_delete_in_missing_file_writes_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        core = GovernanceCore.for_project(root)

        result = core.guard.save_token(
            TokenWrite("/tokens/global/ghost.json", "color.a", BackupAction.DELETE, confirm=True)
        )

        assert result.backup_id is None
        assert not (root / "tokens/global/ghost.json").exists()
        assert core.backups.count() == 0


def test_path_locks_are_released():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        core = GovernanceCore.for_project(root)
        for i in range(5):
            core.guard.save_token(
                TokenWrite(f"/tokens/global/f{i}.json", "a", BackupAction.CREATE, value={"$value": i})
            )

        assert len(core.guard._locks) == 0
        lock = core.guard.path_lock("/tokens/global/f0.json")
        with lock:
            assert core.guard.path_lock("/tokens/global/f0.json") is lock
