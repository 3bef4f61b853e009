"""Tests for core/schema_validator.py — tiered and legacy shapes, one issue per field path."""

from __future__ import annotations

from typing import Any

import pytest

from core.schema_validator import (
    DocumentShape,
    ValidationError,
    ValidationResult,
    validate,
)


def _tiered(**overrides: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "schemaVersion": "2.0.0",
        "permissions": {"allow": ["Read(**/*)"], "ask": [], "deny": ["Bash(rm:*)"], "defaultMode": "default"},
    }
    doc.update(overrides)
    return doc


def _legacy(**overrides: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "name": "demo",
        "version": "1.0.0",
        "permissions": {"allow": ["Read(**/*)"], "deny": ["Bash(rm:*)"]},
        "rules": ["be careful"],
    }
    doc.update(overrides)
    return doc


def _paths(result: ValidationResult) -> list[str]:
    return [issue.path for issue in result.errors]


class TestTieredShape:
    def test_valid_document_passes(self) -> None:
        doc = _tiered(env={"NODE_ENV": "development"})
        result = validate(doc, DocumentShape.TIERED)
        assert result.ok
        assert result.document is doc
        assert result.errors == ()

    def test_missing_permissions_reported_at_field_path(self) -> None:
        doc = _tiered()
        del doc["permissions"]
        result = validate(doc, DocumentShape.TIERED)
        assert not result.ok
        assert _paths(result) == ["permissions"]

    def test_missing_allow_reported_under_permissions(self) -> None:
        result = validate(_tiered(permissions={"deny": []}), DocumentShape.TIERED)
        assert _paths(result) == ["permissions.allow"]

    def test_non_string_rule_reports_element_path(self) -> None:
        result = validate(_tiered(permissions={"allow": ["Read(**/*)", 42]}), DocumentShape.TIERED)
        assert _paths(result) == ["permissions.allow[1]"]

    def test_bad_default_mode_rejected(self) -> None:
        doc = _tiered(permissions={"allow": [], "defaultMode": "yolo"})
        result = validate(doc, DocumentShape.TIERED)
        assert _paths(result) == ["permissions.defaultMode"]

    def test_negative_hook_timeout_rejected(self) -> None:
        hooks = {
            "PostToolUse": [
                {"matcher": "Edit", "hooks": [{"type": "command", "command": "x", "timeoutSeconds": -1}]}
            ]
        }
        result = validate(_tiered(hooks=hooks), DocumentShape.TIERED)
        assert _paths(result) == ["hooks.PostToolUse[0].hooks[0].timeoutSeconds"]

    def test_env_values_must_be_strings(self) -> None:
        result = validate(_tiered(env={"DEBUG": True}), DocumentShape.TIERED)
        assert _paths(result) == ["env.DEBUG"]

    def test_multiple_violations_each_reported(self) -> None:
        doc = {"permissions": {"allow": [1], "defaultMode": "nope"}}
        result = validate(doc, DocumentShape.TIERED)
        assert set(_paths(result)) == {
            "schemaVersion",
            "permissions.allow[0]",
            "permissions.defaultMode",
        }

    def test_non_object_document_reported_at_root(self) -> None:
        result = validate(["not", "a", "document"], DocumentShape.TIERED)
        assert _paths(result) == ["<root>"]


class TestLegacyShape:
    def test_valid_legacy_document_passes(self) -> None:
        assert validate(_legacy(customInstructions="hi"), DocumentShape.LEGACY).ok

    def test_missing_rules_and_deny(self) -> None:
        doc = _legacy(permissions={"allow": []})
        del doc["rules"]
        result = validate(doc, DocumentShape.LEGACY)
        assert set(_paths(result)) == {"permissions.deny", "rules"}


class TestShapeIsNeverInferred:
    def test_legacy_document_fails_tiered_shape(self) -> None:
        assert not validate(_legacy(), DocumentShape.TIERED).ok

    def test_tiered_document_fails_legacy_shape(self) -> None:
        assert not validate(_tiered(), DocumentShape.LEGACY).ok


class TestUnwrap:
    def test_unwrap_returns_document(self) -> None:
        doc = _tiered()
        assert validate(doc, DocumentShape.TIERED).unwrap() is doc

    def test_unwrap_raises_with_issues(self) -> None:
        result = validate({"schemaVersion": "2.0.0"}, DocumentShape.TIERED)
        with pytest.raises(ValidationError, match="permissions: required field is missing") as info:
            result.unwrap()
        assert [i.path for i in info.value.issues] == ["permissions"]
