"""Read the persisted setup layout once and summarise it as an ExistingSetupState."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from core.action_planner import PLACEHOLDER_CONFLICT
from core.config import AppConfig
from core.models import ExistingSetupState
from core.policy_store import CorruptionError, PolicyStore
from core.reconciler import assess_staleness, document_version, is_older_than

logger = logging.getLogger(__name__)

INVALID_DOCUMENT_CONFLICT = "invalid-policy-document"
INCOMPLETE_SETUP_CONFLICT = "incomplete-setup"
LEGACY_SCRIPT_PREFIX = "legacy-script:"

LEGACY_SCRIPTS = (
    "scripts/fetch-docs.js",
    "scripts/extract-content.js",
    "scripts/fetch-docs.sh",
    "scripts/update-docs.sh",
)

# Markers left behind by an unfilled project-note template.
PLACEHOLDER_MARKERS = ("[Your Project Name]", "<!-- Brief description of project purpose")
_MIN_NOTE_CHARS = 100


def inspect_setup(root: Path, config: AppConfig, now: datetime | None = None) -> ExistingSetupState:
    now = now or datetime.now(timezone.utc)
    layout = config.layout
    policy_dir = root / layout.policy_dir
    store = PolicyStore(policy_dir / layout.policy_filename)
    note_path = root / layout.project_note

    has_dir = policy_dir.is_dir()
    has_document = store.exists()
    has_note = note_path.is_file()
    conflicts: list[str] = []
    stale_reasons: list[str] = []
    version: str | None = None
    note_stale = False
    docs_stale = False

    if has_document:
        try:
            document = store.read()
        except CorruptionError as exc:
            logger.warning("%s", exc)
            conflicts.append(INVALID_DOCUMENT_CONFLICT)
            document = None
        if document is not None:
            version = document_version(document) or "unknown"
        report = assess_staleness(document, config.reconcile.target_version)
        if report.needs_update:
            stale_reasons.append(report.reason)
    elif has_dir:
        conflicts.append(INCOMPLETE_SETUP_CONFLICT)

    if has_note:
        content = note_path.read_text(encoding="utf-8", errors="replace")
        if any(marker in content for marker in PLACEHOLDER_MARKERS):
            conflicts.append(PLACEHOLDER_CONFLICT)
        if len(content.strip()) < _MIN_NOTE_CHARS:
            note_stale = True
            stale_reasons.append(f"{layout.project_note} is nearly empty")
        elif is_older_than(note_path.stat().st_mtime, now, config.reconcile.note_max_age_days):
            note_stale = True
            stale_reasons.append(f"{layout.project_note} is older than {config.reconcile.note_max_age_days:g} days")

    combined_docs = root / layout.docs_dir / "combined-docs.md"
    if combined_docs.is_file() and is_older_than(
        combined_docs.stat().st_mtime, now, config.reconcile.docs_max_age_days
    ):
        docs_stale = True
        stale_reasons.append("fetched documentation is out of date")

    for script in LEGACY_SCRIPTS:
        if (root / script).is_file():
            conflicts.append(f"{LEGACY_SCRIPT_PREFIX}{script}")

    return ExistingSetupState(
        has_setup=has_dir or has_note,
        has_policy_document=has_document,
        has_project_note=has_note,
        document_version=version,
        is_stale=bool(stale_reasons),
        note_stale=note_stale,
        docs_stale=docs_stale,
        conflicts=tuple(conflicts),
        stale_reason="; ".join(stale_reasons),
    )
