"""Execute a planned action list in order: create → update → generate → resolve → fetch.

Each action runs to completion before the next starts.  A failing action
aborts the rest of the list; whatever already ran stays on disk (no rollback).
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path

from core.action_planner import (
    COMMANDS,
    CONFIGURATION,
    CONFLICTS,
    DOCUMENTATION,
    FULL_SETUP,
    PLACEHOLDER_CONFLICT,
    PROJECT_NOTE,
    SETTINGS,
)
from core.config import AppConfig, RunOptions
from core.models import Action, ActionType, ExistingSetupState, ProjectProfile, UpdateResult
from core.policy_compiler import check_document, compile_policy, generate_local_policy
from core.policy_store import BackupWriteWarning, PolicyStore
from core.reconciler import merge_documents, reconcile
from core.schema_validator import ValidationError
from tools.command_templates import install_templates
from tools.docs_tool import write_documentation
from tools.project_note import write_project_note
from tools.setup_inspector import LEGACY_SCRIPT_PREFIX

logger = logging.getLogger(__name__)


class SetupError(Exception):
    """An action failed; the remaining actions were not run."""


class SetupRunner:
    def __init__(
        self,
        root: Path,
        config: AppConfig,
        profile: ProjectProfile,
        options: RunOptions,
        now: datetime | None = None,
        existing: ExistingSetupState | None = None,
    ):
        self.root = root
        self.config = config
        self.profile = profile
        self.options = options
        self.now = now or datetime.now(timezone.utc)
        self.existing = existing or ExistingSetupState()
        layout = config.layout
        self.policy_dir = root / layout.policy_dir
        self.store = PolicyStore(self.policy_dir / layout.policy_filename)
        self.local_store = PolicyStore(self.policy_dir / layout.local_policy_filename)
        self.update_result: UpdateResult | None = None

    @property
    def target_version(self) -> str:
        return self.config.reconcile.target_version

    def run(self, actions: list[Action]) -> list[Action]:
        """Run *actions* in order.  Returns the completed ones.  Raises on the first failure."""
        if self.options.reset and Action(ActionType.CREATE, FULL_SETUP) in actions:
            self._wipe_policy_dir()

        completed: list[Action] = []
        for action in actions:
            label = action.describe()
            logger.info("action: %s", label)
            try:
                self._execute(action)
            except ValidationError:
                logger.error("  %s failed validation — remaining actions skipped", label)
                raise
            except OSError as exc:
                raise SetupError(f"{label} failed: {exc}") from exc
            completed.append(action)
            logger.info("  → done")
        return completed

    def _execute(self, action: Action) -> None:
        handlers = {
            (ActionType.CREATE, FULL_SETUP): self.create_full_setup,
            (ActionType.CREATE, SETTINGS): self.create_settings,
            (ActionType.UPDATE, CONFIGURATION): self.update_configuration,
            (ActionType.UPDATE, COMMANDS): self.update_commands,
            (ActionType.GENERATE, PROJECT_NOTE): self.generate_project_note,
        }
        if action.type == ActionType.RESOLVE and action.target == CONFLICTS:
            self.resolve_conflicts(action.payload or ())
        elif action.type == ActionType.FETCH and action.target == DOCUMENTATION:
            write_documentation(self.root / self.config.layout.docs_dir, action.payload or (), self.now)
        elif (action.type, action.target) in handlers:
            handlers[(action.type, action.target)]()
        else:
            raise SetupError(f"no handler for action {action.describe()!r}")

    # ── actions ───────────────────────────────────────────────────

    def create_full_setup(self) -> None:
        self.policy_dir.mkdir(parents=True, exist_ok=True)
        self.create_settings()
        self.update_commands()
        self.generate_project_note()
        (self.root / self.config.layout.docs_dir).mkdir(parents=True, exist_ok=True)

    def create_settings(self) -> None:
        if self.update_result is not None:
            # the configuration update earlier in this run already wrote the document
            logger.info("  %s already reconciled", self.store.path.name)
            self._ensure_local_policy()
            return
        fresh = compile_policy(
            self.profile,
            self.options,
            target_version=self.target_version,
            hook_config=self.config.hooks,
            now=self.now,
        ).unwrap()
        old = self.store.read_or_none()
        if old is not None:
            self._backup(self.store)
            fresh = check_document(merge_documents(old, fresh)).unwrap()
        self.store.write(fresh)
        logger.info("  wrote %s", self.store.path.relative_to(self.root))
        self._ensure_local_policy()

    def _ensure_local_policy(self) -> None:
        if self.local_store.exists():
            logger.info("  keeping existing %s", self.local_store.path.name)
        else:
            local = generate_local_policy(target_version=self.target_version, now=self.now).unwrap()
            self.local_store.write(local)
            logger.info("  created %s template", self.local_store.path.name)

    def update_configuration(self) -> None:
        self.update_result = reconcile(
            self.store,
            self.profile,
            self.options,
            target_version=self.target_version,
            hook_config=self.config.hooks,
            now=self.now,
        )
        # the project note and fetched docs are refreshed here when they were the stale part
        if self.existing.note_stale and PLACEHOLDER_CONFLICT not in self.existing.conflicts:
            self.generate_project_note()
        if self.existing.docs_stale and not self.options.no_docs and not self.profile.frameworks:
            self._refresh_documentation()

    def update_commands(self) -> None:
        created = install_templates(self.policy_dir / self.config.layout.commands_dirname)
        logger.info("  %d command template(s) added", len(created))

    def generate_project_note(self) -> None:
        note = self.root / self.config.layout.project_note
        if note.is_file():
            self._backup(PolicyStore(note))
        write_project_note(note, self.profile)

    def resolve_conflicts(self, conflicts: tuple[str, ...]) -> None:
        for conflict in conflicts:
            if conflict.startswith(LEGACY_SCRIPT_PREFIX):
                self._retire_script(conflict[len(LEGACY_SCRIPT_PREFIX):])
            else:
                logger.info("  %s: handled by earlier actions", conflict)

    # ── helpers ───────────────────────────────────────────────────

    def _refresh_documentation(self) -> None:
        """Rewrite the notes fetched by an earlier run when no fetch is planned for this one."""
        docs_dir = self.root / self.config.layout.docs_dir
        fetched = tuple(sorted(p.stem for p in (docs_dir / "fetched").glob("*.md")))
        if not fetched:
            logger.info("  no fetched notes to refresh")
            return
        write_documentation(docs_dir, fetched, self.now)

    def _retire_script(self, relative: str) -> None:
        source = self.root / relative
        if not source.exists():
            return
        backup_dir = self.root / "scripts" / "backup"
        backup_dir.mkdir(parents=True, exist_ok=True)
        target = backup_dir / source.name
        suffix = 1
        while target.exists():
            target = backup_dir / f"{source.stem}.{suffix}{source.suffix}"
            suffix += 1
        shutil.move(str(source), str(target))
        logger.info("  moved %s → %s", relative, target.relative_to(self.root))

    def _backup(self, store: PolicyStore) -> Path | None:
        try:
            path = store.backup(self.now)
        except BackupWriteWarning as exc:
            logger.warning("  %s — continuing without a backup", exc)
            return None
        logger.info("  backup created: %s", path.name)
        return path

    def _wipe_policy_dir(self) -> None:
        """Reset: back up the document, then remove everything in the policy dir except backups."""
        if not self.policy_dir.is_dir():
            return
        if self.store.exists():
            self._backup(self.store)
        logger.warning("reset: clearing %s (backups kept)", self.policy_dir)
        for child in list(self.policy_dir.iterdir()):
            if self.store.is_backup(child):
                continue
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()

