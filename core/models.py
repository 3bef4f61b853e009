"""Read-only snapshots and plan records shared across the core."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping


class PackageManager(Enum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    BUN = "bun"


@dataclass(frozen=True)
class ProjectProfile:
    """What the project looks like.  Built once per run, never mutated."""

    languages: frozenset[str] = frozenset()
    frameworks: frozenset[str] = frozenset()
    package_manager: PackageManager | None = None
    dependencies: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    structure_flags: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(
        cls,
        languages: list[str] | tuple[str, ...] | frozenset[str] = (),
        frameworks: list[str] | tuple[str, ...] | frozenset[str] = (),
        package_manager: str | PackageManager | None = None,
        dependencies: Mapping[str, str] | None = None,
        structure_flags: Mapping[str, bool] | None = None,
    ) -> ProjectProfile:
        if isinstance(package_manager, str):
            package_manager = PackageManager(package_manager)
        return cls(
            languages=frozenset(languages),
            frameworks=frozenset(frameworks),
            package_manager=package_manager,
            dependencies=MappingProxyType(dict(dependencies or {})),
            structure_flags=MappingProxyType(dict(structure_flags or {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "languages": sorted(self.languages),
            "frameworks": sorted(self.frameworks),
            "packageManager": self.package_manager.value if self.package_manager else None,
            "dependencies": dict(self.dependencies),
            "structureFlags": dict(self.structure_flags),
        }


@dataclass(frozen=True)
class ExistingSetupState:
    """Snapshot of the persisted layout, read once at run start."""

    has_setup: bool = False
    has_policy_document: bool = False
    has_project_note: bool = False
    document_version: str | None = None
    is_stale: bool = False
    # which related documents tripped the staleness check
    note_stale: bool = False
    docs_stale: bool = False
    conflicts: tuple[str, ...] = ()
    stale_reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasSetup": self.has_setup,
            "hasPolicyDocument": self.has_policy_document,
            "hasProjectNote": self.has_project_note,
            "documentVersion": self.document_version,
            "isStale": self.is_stale,
            "noteStale": self.note_stale,
            "docsStale": self.docs_stale,
            "staleReason": self.stale_reason,
            "conflicts": list(self.conflicts),
        }


class ActionType(Enum):
    CREATE = "create"
    UPDATE = "update"
    GENERATE = "generate"
    FETCH = "fetch"
    RESOLVE = "resolve"


@dataclass(frozen=True)
class Action:
    type: ActionType
    target: str
    payload: tuple[str, ...] | None = None

    def describe(self) -> str:
        if self.type == ActionType.FETCH:
            subjects = ", ".join(self.payload) if self.payload else "project"
            return f"Fetch {self.target} for {subjects}"
        if self.type == ActionType.RESOLVE:
            return f"Resolve {self.target}: {', '.join(self.payload or ())}"
        return f"{self.type.value.capitalize()} {self.target}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value, "target": self.target}
        if self.payload is not None:
            data["payload"] = list(self.payload)
        return data


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of a reconcile.  ``backup_reference`` is None when nothing was backed up."""

    backup_reference: Path | None
    merged_document: dict[str, Any]
    stale_reason: str
    needs_update: bool = True
