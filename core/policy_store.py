"""File-based policy document store with atomic writes and write-once backups."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class CorruptionError(Exception):
    """The persisted document is unreadable or not a JSON object.  Callers treat it as absent."""


class BackupWriteWarning(Exception):
    """A backup copy could not be written.  Logged; does not stop the update."""


class PolicyStore:
    """Thin wrapper around one JSON policy file.  All reads go to disk — no in-process cache."""

    def __init__(self, path: Path):
        self.path = path

    # ── public API ────────────────────────────────────────────────

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> dict[str, Any]:
        """Read the document from disk.  Raises CorruptionError on any read/parse failure."""
        try:
            with open(self.path, encoding="utf-8") as fh:
                document = json.load(fh)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptionError(f"{self.path} is unreadable: {exc}") from exc
        if not isinstance(document, dict):
            raise CorruptionError(f"{self.path} does not contain a JSON object")
        return document

    def read_or_none(self) -> dict[str, Any] | None:
        """Like read(), but a missing or corrupt document comes back as None."""
        if not self.exists():
            return None
        try:
            return self.read()
        except CorruptionError as exc:
            logger.warning("%s — treating it as absent", exc)
            return None

    def write(self, document: dict[str, Any]) -> None:
        """Atomically write *document* to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2)
                fh.write("\n")
            os.replace(tmp, self.path)
        except Exception:
            os.unlink(tmp)
            raise

    # ── backups ───────────────────────────────────────────────────

    def backup_path(self, epoch_millis: int) -> Path:
        return self.path.with_name(f"{self.path.stem}.backup.{epoch_millis}{self.path.suffix}")

    def backup(self, now: datetime | None = None) -> Path:
        """Copy the current file to ``<stem>.backup.<epoch-millis><suffix>``.

        Existing backups are never overwritten: on a name clash the millisecond
        stamp is bumped until a free name is found.  Raises BackupWriteWarning.
        """
        now = now or datetime.now(timezone.utc)
        millis = int(now.timestamp() * 1000)
        try:
            while True:
                target = self.backup_path(millis)
                try:
                    with open(self.path, "rb") as src, open(target, "xb") as dst:
                        shutil.copyfileobj(src, dst)
                    return target
                except FileExistsError:
                    millis += 1
        except OSError as exc:
            raise BackupWriteWarning(f"could not back up {self.path}: {exc}") from exc

    def is_backup(self, path: Path) -> bool:
        name = path.name
        return name.startswith(f"{self.path.stem}.backup.") and name.endswith(self.path.suffix)
