"""Structural validation of policy documents against the two on-disk shapes.

Pure and total: ``validate`` never raises for a bad document, it reports one
``ValidationIssue`` per offending field path.  The caller names the shape; the
shape is never guessed from content because tiered and legacy documents share
field names.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError as SchemaViolation


class DocumentShape(Enum):
    TIERED = "tiered"
    LEGACY = "legacy"


@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class ValidationError(Exception):
    """A document failed its schema.  Fatal to the run."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = list(issues)
        super().__init__(
            "policy document validation failed:\n" + "\n".join(f"  {i}" for i in self.issues)
        )


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    document: dict[str, Any] | None = None
    errors: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    def unwrap(self) -> dict[str, Any]:
        """Return the document or raise ValidationError.  Only orchestrators call this."""
        if not self.ok or self.document is None:
            raise ValidationError(list(self.errors))
        return self.document


# ── schemas ───────────────────────────────────────────────────────

_STRING_ARRAY: dict[str, Any] = {"type": "array", "items": {"type": "string"}}

_HOOK_DEFINITION: dict[str, Any] = {
    "type": "object",
    "required": ["type", "command"],
    "properties": {
        "type": {"type": "string"},
        "command": {"type": "string"},
        "timeoutSeconds": {"type": "number", "minimum": 0},
        "continueOnError": {"type": "boolean"},
    },
}

_HOOK_MATCHER: dict[str, Any] = {
    "type": "object",
    "required": ["matcher", "hooks"],
    "properties": {
        "matcher": {"type": "string"},
        "hooks": {"type": "array", "items": _HOOK_DEFINITION},
    },
}

TIERED_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Tiered policy document",
    "type": "object",
    "required": ["schemaVersion", "permissions"],
    "properties": {
        "$schema": {"type": "string"},
        "schemaVersion": {"type": "string"},
        "permissions": {
            "type": "object",
            "required": ["allow"],
            "properties": {
                "allow": _STRING_ARRAY,
                "ask": _STRING_ARRAY,
                "deny": _STRING_ARRAY,
                "defaultMode": {"enum": ["default", "ask", "deny"]},
            },
        },
        "hooks": {
            "type": "object",
            "additionalProperties": {"type": "array", "items": _HOOK_MATCHER},
        },
        "env": {"type": "object", "additionalProperties": {"type": "string"}},
        "customInstructions": {"type": "string"},
        "created": {"type": "string"},
        "lastUpdated": {"type": "string"},
    },
}

LEGACY_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "Legacy policy document",
    "type": "object",
    "required": ["name", "version", "permissions", "rules"],
    "properties": {
        "name": {"type": "string"},
        "version": {"type": "string"},
        "permissions": {
            "type": "object",
            "required": ["allow", "deny"],
            "properties": {"allow": _STRING_ARRAY, "deny": _STRING_ARRAY},
        },
        "rules": _STRING_ARRAY,
        "customInstructions": {"type": "string"},
        "created": {"type": "string"},
        "lastUpdated": {"type": "string"},
    },
}

_VALIDATORS: dict[DocumentShape, Draft202012Validator] = {}
for _shape, _schema in ((DocumentShape.TIERED, TIERED_SCHEMA), (DocumentShape.LEGACY, LEGACY_SCHEMA)):
    Draft202012Validator.check_schema(_schema)
    _VALIDATORS[_shape] = Draft202012Validator(_schema)

# Fields that must be present and non-empty for a persisted document to count as current.
REQUIRED_FIELDS: dict[DocumentShape, tuple[str, ...]] = {
    DocumentShape.TIERED: ("schemaVersion", "permissions"),
    DocumentShape.LEGACY: ("name", "permissions", "rules"),
}


# ── validation ────────────────────────────────────────────────────


def _format_path(parts: list[Any]) -> str:
    out = ""
    for part in parts:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out or "<root>"


def _issues_for(error: SchemaViolation) -> list[ValidationIssue]:
    parts = list(error.absolute_path)
    if error.validator == "required" and isinstance(error.instance, dict):
        # jsonschema reports required-ness on the parent; point at the missing field itself.
        return [
            ValidationIssue(_format_path(parts + [name]), "required field is missing")
            for name in error.validator_value
            if name not in error.instance
        ]
    return [ValidationIssue(_format_path(parts), error.message)]


def validate(document: Any, shape: DocumentShape) -> ValidationResult:
    """Check *document* against *shape*.  Returns a result, never raises for bad input."""
    validator = _VALIDATORS[shape]
    seen: set[ValidationIssue] = set()
    issues: list[ValidationIssue] = []
    for error in validator.iter_errors(document):
        for issue in _issues_for(error):
            if issue not in seen:
                seen.add(issue)
                issues.append(issue)
    if issues:
        issues.sort(key=lambda i: (i.path, i.message))
        return ValidationResult(ok=False, document=None, errors=tuple(issues))
    return ValidationResult(ok=True, document=document)
