"""Tests for core/setup_runner.py — full setup, reset, settings-only, stale parts, conflicts, failure handling."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from core.action_planner import (
    COMMANDS,
    CONFIGURATION,
    CONFLICTS,
    DOCUMENTATION,
    FULL_SETUP,
    SETTINGS,
)
from core.config import AppConfig, RunOptions
from core.models import Action, ActionType, ExistingSetupState, ProjectProfile
from core.schema_validator import ValidationError
from core.setup_runner import SetupError, SetupRunner
from tools.command_templates import TEMPLATES

NOW = datetime(2026, 4, 10, 14, 0, tzinfo=timezone.utc)
PROFILE = ProjectProfile.build(languages=["typescript"], frameworks=["react"], package_manager="npm")


def _runner(
    root: Path,
    profile: ProjectProfile = PROFILE,
    existing: ExistingSetupState | None = None,
    **options: object,
) -> SetupRunner:
    return SetupRunner(root, AppConfig(), profile, RunOptions(**options), now=NOW, existing=existing)


def _seed_policy(root: Path, document: dict) -> Path:
    path = root / ".claude" / "settings.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


class TestFullSetup:
    def test_creates_complete_layout(self, tmp_path: Path) -> None:
        runner = _runner(tmp_path)
        done = runner.run([Action(ActionType.CREATE, FULL_SETUP)])

        assert done == [Action(ActionType.CREATE, FULL_SETUP)]
        settings = json.loads((tmp_path / ".claude" / "settings.json").read_text())
        assert settings["schemaVersion"] == "2.0.0"
        assert "Bash(rm:*)" in settings["permissions"]["deny"]
        assert (tmp_path / ".claude" / "settings.local.json").is_file()
        commands = sorted(p.name for p in (tmp_path / ".claude" / "commands").iterdir())
        assert commands == sorted(TEMPLATES)
        assert len((tmp_path / "CLAUDE.md").read_text()) > 100
        assert (tmp_path / "docs").is_dir()

    def test_existing_local_policy_is_kept(self, tmp_path: Path) -> None:
        local = tmp_path / ".claude" / "settings.local.json"
        local.parent.mkdir(parents=True)
        local.write_text('{"mine": true}', encoding="utf-8")
        _runner(tmp_path).run([Action(ActionType.CREATE, SETTINGS)])
        assert json.loads(local.read_text()) == {"mine": True}

    def test_fetch_writes_framework_notes(self, tmp_path: Path) -> None:
        _runner(tmp_path).run([Action(ActionType.FETCH, DOCUMENTATION, ("react",))])
        assert (tmp_path / "docs" / "fetched" / "react.md").is_file()
        assert (tmp_path / "docs" / "combined-docs.md").is_file()


class TestReset:
    def test_reset_clears_policy_dir_but_keeps_backups(self, tmp_path: Path) -> None:
        _seed_policy(tmp_path, {"version": "1.0.0", "customInstructions": "old"})
        old_backup = tmp_path / ".claude" / "settings.backup.1000.json"
        old_backup.write_text("{}", encoding="utf-8")
        (tmp_path / ".claude" / "stray.txt").write_text("x", encoding="utf-8")

        _runner(tmp_path, reset=True).run([Action(ActionType.CREATE, FULL_SETUP)])

        names = {p.name for p in (tmp_path / ".claude").iterdir()}
        assert "stray.txt" not in names
        assert old_backup.name in names
        millis = int(NOW.timestamp() * 1000)
        assert f"settings.backup.{millis}.json" in names
        settings = json.loads((tmp_path / ".claude" / "settings.json").read_text())
        assert "customInstructions" not in settings

    def test_reset_without_full_setup_action_wipes_nothing(self, tmp_path: Path) -> None:
        _seed_policy(tmp_path, {"version": "1.0.0"})
        (tmp_path / ".claude" / "stray.txt").write_text("x", encoding="utf-8")
        _runner(tmp_path, reset=True).run([Action(ActionType.UPDATE, COMMANDS)])
        assert (tmp_path / ".claude" / "stray.txt").is_file()


class TestSettingsAndUpdate:
    def test_settings_only_backs_up_and_preserves_fields(self, tmp_path: Path) -> None:
        _seed_policy(tmp_path, {"version": "1.0.0", "customInstructions": "keep me", "created": "2023-01-01"})
        _runner(tmp_path).run([Action(ActionType.CREATE, SETTINGS)])

        settings = json.loads((tmp_path / ".claude" / "settings.json").read_text())
        assert settings["customInstructions"] == "keep me"
        assert settings["created"] == "2023-01-01"
        assert settings["lastUpdated"] == NOW.isoformat()
        backups = [p for p in (tmp_path / ".claude").iterdir() if ".backup." in p.name]
        assert len(backups) == 1

    def test_update_configuration_records_result(self, tmp_path: Path) -> None:
        _seed_policy(tmp_path, {"version": "1.0.0"})
        runner = _runner(tmp_path)
        runner.run([Action(ActionType.UPDATE, CONFIGURATION)])
        assert runner.update_result is not None
        assert runner.update_result.needs_update
        assert runner.update_result.backup_reference is not None

    def test_update_after_missing_document_writes_it_once(self, tmp_path: Path) -> None:
        (tmp_path / ".claude").mkdir()
        _runner(tmp_path).run([Action(ActionType.UPDATE, CONFIGURATION), Action(ActionType.CREATE, SETTINGS)])
        names = {p.name for p in (tmp_path / ".claude").iterdir()}
        assert "settings.json" in names
        assert "settings.local.json" in names
        assert not [n for n in names if ".backup." in n]


class TestStaleParts:
    def test_stale_note_is_regenerated_with_backup(self, tmp_path: Path) -> None:
        _seed_policy(tmp_path, {"version": "1.0.0"})
        (tmp_path / "CLAUDE.md").write_text("# notes\n", encoding="utf-8")
        existing = ExistingSetupState(has_setup=True, has_policy_document=True, has_project_note=True,
                                      is_stale=True, note_stale=True)
        _runner(tmp_path, existing=existing).run([Action(ActionType.UPDATE, CONFIGURATION)])

        assert len((tmp_path / "CLAUDE.md").read_text()) > 100
        millis = int(NOW.timestamp() * 1000)
        assert (tmp_path / f"CLAUDE.backup.{millis}.md").read_text() == "# notes\n"

    def test_current_note_is_left_alone(self, tmp_path: Path) -> None:
        (tmp_path / "CLAUDE.md").write_text("# mine\n", encoding="utf-8")
        _runner(tmp_path, existing=ExistingSetupState(has_setup=True)).run(
            [Action(ActionType.UPDATE, CONFIGURATION)]
        )
        assert (tmp_path / "CLAUDE.md").read_text() == "# mine\n"

    def test_stale_docs_are_refreshed_without_a_fetch(self, tmp_path: Path) -> None:
        fetched = tmp_path / "docs" / "fetched"
        fetched.mkdir(parents=True)
        (fetched / "react.md").write_text("old", encoding="utf-8")
        (tmp_path / "docs" / "combined-docs.md").write_text("old", encoding="utf-8")
        existing = ExistingSetupState(has_setup=True, is_stale=True, docs_stale=True)
        _runner(tmp_path, profile=ProjectProfile(), existing=existing).run(
            [Action(ActionType.UPDATE, CONFIGURATION)]
        )
        assert "# React Documentation" in (tmp_path / "docs" / "combined-docs.md").read_text()


class TestConflicts:
    def test_legacy_scripts_are_moved_to_backup(self, tmp_path: Path) -> None:
        scripts = tmp_path / "scripts"
        (scripts / "backup").mkdir(parents=True)
        (scripts / "fetch-docs.js").write_text("// old", encoding="utf-8")
        (scripts / "backup" / "fetch-docs.js").write_text("// older", encoding="utf-8")

        _runner(tmp_path).run(
            [Action(ActionType.RESOLVE, CONFLICTS, ("legacy-script:scripts/fetch-docs.js", "placeholder"))]
        )

        assert not (scripts / "fetch-docs.js").exists()
        assert (scripts / "backup" / "fetch-docs.js").read_text() == "// older"
        assert (scripts / "backup" / "fetch-docs.1.js").read_text() == "// old"


class TestFailures:
    def test_validation_failure_stops_remaining_actions(self, tmp_path: Path) -> None:
        _seed_policy(tmp_path, {"version": "1.0.0", "customInstructions": 42})
        runner = _runner(tmp_path)
        with pytest.raises(ValidationError):
            runner.run([Action(ActionType.CREATE, SETTINGS), Action(ActionType.UPDATE, COMMANDS)])
        assert not (tmp_path / ".claude" / "commands").exists()
        assert json.loads((tmp_path / ".claude" / "settings.json").read_text())["version"] == "1.0.0"

    def test_os_error_becomes_setup_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def _boom(commands_dir: Path) -> list[Path]:
            raise PermissionError("read-only filesystem")

        monkeypatch.setattr("core.setup_runner.install_templates", _boom)
        with pytest.raises(SetupError, match="read-only filesystem"):
            _runner(tmp_path).run([Action(ActionType.UPDATE, COMMANDS)])

    def test_unknown_action_raises(self, tmp_path: Path) -> None:
        with pytest.raises(SetupError, match="no handler"):
            _runner(tmp_path).run([Action(ActionType.GENERATE, "nonsense")])
