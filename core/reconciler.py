"""Staleness assessment and safe update of a persisted policy document.

Setup status moves NO_SETUP → CURRENT on a full setup, CURRENT → NEEDS_UPDATE
when a staleness trigger fires, and NEEDS_UPDATE → CURRENT after a reconcile.
``reset`` sends any status back to NO_SETUP.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from core.config import HookConfig, RunOptions
from core.models import ExistingSetupState, ProjectProfile, UpdateResult
from core.policy_compiler import compile_policy
from core.policy_store import BackupWriteWarning, CorruptionError, PolicyStore
from core.schema_validator import (
    REQUIRED_FIELDS,
    DocumentShape,
    ValidationIssue,
    ValidationResult,
    validate,
)

logger = logging.getLogger(__name__)

# Carried over from the persisted document when present there.
PRESERVED_FIELDS: tuple[str, ...] = ("customInstructions", "created")

_SECONDS_PER_DAY = 60 * 60 * 24


class SetupStatus(Enum):
    NO_SETUP = "no-setup"
    CURRENT = "current"
    NEEDS_UPDATE = "needs-update"


def setup_status(existing: ExistingSetupState, options: RunOptions) -> SetupStatus:
    if options.reset or not existing.has_setup:
        return SetupStatus.NO_SETUP
    if existing.is_stale:
        return SetupStatus.NEEDS_UPDATE
    return SetupStatus.CURRENT


@dataclass(frozen=True)
class StalenessReport:
    needs_update: bool
    reason: str
    current_version: str | None = None
    target_version: str | None = None
    errors: tuple[ValidationIssue, ...] = field(default_factory=tuple)


def document_version(document: dict[str, Any]) -> str | None:
    version = document.get("schemaVersion", document.get("version"))
    return str(version) if version is not None else None


def assess_staleness(
    document: dict[str, Any] | None,
    target_version: str,
    shape: DocumentShape = DocumentShape.TIERED,
) -> StalenessReport:
    """Decide whether a persisted document must be regenerated.

    Triggers are checked in order: absent/corrupt document, exact-string version
    mismatch, schema failure, missing or empty required field.
    """
    if document is None:
        return StalenessReport(True, "Policy document is missing or unreadable", None, target_version)

    current = document_version(document)
    if current != target_version:
        shown = current or "unknown"
        return StalenessReport(
            True, f"Version mismatch: {shown} → {target_version}", shown, target_version
        )

    result = validate(document, shape)
    if not result.ok:
        return StalenessReport(
            True,
            "Policy document failed validation: " + "; ".join(str(i) for i in result.errors),
            current,
            target_version,
            result.errors,
        )

    missing = [name for name in REQUIRED_FIELDS[shape] if not document.get(name)]
    if missing:
        return StalenessReport(
            True, f"Missing required fields: {', '.join(missing)}", current, target_version
        )

    return StalenessReport(False, "Setup is up to date", current, target_version)


def is_older_than(mtime: float, now: datetime, max_age_days: float) -> bool:
    """True when a file last modified at *mtime* (epoch seconds) is past *max_age_days*."""
    return (now.timestamp() - mtime) / _SECONDS_PER_DAY > max_age_days


def merge_documents(old: dict[str, Any] | None, fresh: dict[str, Any]) -> dict[str, Any]:
    """Fresh fields win except PRESERVED_FIELDS, which the old document keeps when it has them.

    Version and ``lastUpdated`` always come from *fresh*.
    """
    merged = dict(fresh)
    if old:
        for name in PRESERVED_FIELDS:
            if old.get(name) is not None:
                merged[name] = old[name]
    for name in ("schemaVersion", "lastUpdated"):
        if name in fresh:
            merged[name] = fresh[name]
        else:
            merged.pop(name, None)
    return merged


def reconcile(
    store: PolicyStore,
    profile: ProjectProfile,
    options: RunOptions,
    *,
    target_version: str,
    hook_config: HookConfig | None = None,
    now: datetime | None = None,
) -> UpdateResult:
    """Back up, recompile, merge and write the persisted document.

    Returns without touching disk when the document is already current.  A
    merged document that fails validation raises ValidationError (fatal); a
    failed backup or unreadable old document only logs a warning.
    """
    old: dict[str, Any] | None = None
    if store.exists():
        try:
            old = store.read()
        except CorruptionError as exc:
            logger.warning("%s — regenerating from scratch", exc)

    report = assess_staleness(old, target_version)
    if not report.needs_update:
        logger.info("policy document is current (%s)", target_version)
        return UpdateResult(None, old or {}, report.reason, needs_update=False)
    logger.info("update needed: %s", report.reason)

    backup_ref = None
    if store.exists():
        try:
            backup_ref = store.backup(now)
            logger.info("  backup created: %s", backup_ref.name)
        except BackupWriteWarning as exc:
            # TODO: decide whether a failed backup should block the overwrite below.
            logger.warning("  %s — continuing without a backup", exc)

    fresh = compile_policy(
        profile, options, target_version=target_version, hook_config=hook_config, now=now
    ).unwrap()
    merged = merge_documents(old, fresh)

    # check the merged document itself; preserved fields came from an unvalidated file
    final: ValidationResult = validate(merged, DocumentShape.TIERED)
    store.write(final.unwrap())
    logger.info("  policy document updated → %s", target_version)
    return UpdateResult(backup_ref, merged, report.reason)
