"""Compile a project profile and run options into a validated tiered policy document.

Order of operations: baseline → language / package-manager / framework /
dependency contributions → option modifiers (safe-only, include-destructive) →
tier de-duplication (deny beats ask beats allow) → hooks → schema validation.
The floor deny set survives every path.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from core.config import HookConfig, RunOptions
from core.models import ProjectProfile
from core.schema_validator import DocumentShape, ValidationIssue, ValidationResult, validate
from policies.repository_safety import repository_safety_hooks
from policies.rule_tables import (
    CORE_ASK,
    CORE_SAFE_READS,
    DEPENDENCY_RULES,
    FLOOR_DENY,
    FRAMEWORK_RULES,
    LANGUAGE_RULES,
    PACKAGE_MANAGER_RULES,
    REVERSIBLE_DESTRUCTIVE,
    SAFE_ONLY_ALLOW,
    RuleContribution,
)

logger = logging.getLogger(__name__)

SCHEMA_URL = "https://json.schemastore.org/claude-code-settings.json"
POST_TOOL_USE = "PostToolUse"
EDIT_MATCHER = "Edit|Write"

_NODE_LANGUAGES = frozenset({"javascript", "typescript"})

HookMap = dict[str, list[dict[str, Any]]]


def _dedupe(patterns: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for p in patterns:
        if p not in seen:
            seen.add(p)
            out.append(p)
    return out


def _contributions(profile: ProjectProfile) -> list[tuple[str, RuleContribution]]:
    """Every registry entry that applies to *profile*, in a stable order."""
    found: list[tuple[str, RuleContribution]] = []
    for language in sorted(profile.languages):
        if language in LANGUAGE_RULES:
            found.append((f"language:{language}", LANGUAGE_RULES[language]))
        else:
            logger.debug("no rule table for language %s", language)
    if profile.package_manager and profile.languages & _NODE_LANGUAGES:
        key = profile.package_manager.value
        found.append((f"package-manager:{key}", PACKAGE_MANAGER_RULES[key]))
    for framework in sorted(profile.frameworks):
        if framework in FRAMEWORK_RULES:
            found.append((f"framework:{framework}", FRAMEWORK_RULES[framework]))
        else:
            logger.debug("no rule table for framework %s", framework)
    for dependency in sorted(profile.dependencies):
        if dependency in DEPENDENCY_RULES:
            found.append((f"dependency:{dependency}", DEPENDENCY_RULES[dependency]))
    return found


def merge_hooks(*hook_maps: HookMap) -> HookMap:
    """Concatenate matcher lists per event.  Later maps append, never replace."""
    merged: HookMap = {}
    for hook_map in hook_maps:
        for event, matchers in hook_map.items():
            merged.setdefault(event, []).extend(matchers)
    return merged


def _command_hook(command: str, timeout_seconds: int) -> dict[str, Any]:
    return {
        "matcher": EDIT_MATCHER,
        "hooks": [
            {
                "type": "command",
                "command": command,
                "timeoutSeconds": timeout_seconds,
                "continueOnError": True,
            }
        ],
    }


def _profile_hooks(contributions: list[tuple[str, RuleContribution]], hook_config: HookConfig) -> HookMap:
    verify = _dedupe(c.verify_command for _, c in contributions if c.verify_command)
    fmt = _dedupe(c.format_command for _, c in contributions if c.format_command)
    matchers = [_command_hook(cmd, hook_config.typecheck_timeout_seconds) for cmd in verify]
    matchers += [_command_hook(cmd, hook_config.format_timeout_seconds) for cmd in fmt]
    return {POST_TOOL_USE: matchers} if matchers else {}


def _tier_overlaps(permissions: dict[str, list[str]]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    owner: dict[str, str] = {}
    for tier in ("deny", "ask", "allow"):
        for index, pattern in enumerate(permissions.get(tier, [])):
            if pattern in owner and owner[pattern] != tier:
                issues.append(
                    ValidationIssue(
                        f"permissions.{tier}[{index}]",
                        f"pattern {pattern!r} is already in the {owner[pattern]} tier",
                    )
                )
            owner.setdefault(pattern, tier)
    return issues


def _timestamp(now: datetime | None) -> str:
    return (now or datetime.now(timezone.utc)).isoformat()


def compile_policy(
    profile: ProjectProfile,
    options: RunOptions,
    *,
    target_version: str,
    hook_config: HookConfig | None = None,
    now: datetime | None = None,
) -> ValidationResult:
    """Build the tiered policy document for *profile*.  Never raises for a bad result."""
    hook_config = hook_config or HookConfig()
    contributions = _contributions(profile)

    allow: list[str] = list(CORE_SAFE_READS)
    ask: list[str] = list(CORE_ASK)
    deny: list[str] = list(FLOOR_DENY)
    env: dict[str, str] = {}
    for _, contribution in contributions:
        allow.extend(contribution.allow)
        ask.extend(contribution.ask)
        deny.extend(contribution.deny)
        env.update(contribution.env)

    if options.safe_only:
        allow = list(SAFE_ONLY_ALLOW)
        ask = []
        env = {}
        own_hooks: HookMap = {}
    else:
        if options.include_destructive:
            allow.extend(REVERSIBLE_DESTRUCTIVE)
        own_hooks = _profile_hooks(contributions, hook_config)

    deny = _dedupe(deny)
    denied = set(deny)
    ask = [p for p in _dedupe(ask) if p not in denied]
    gated = denied | set(ask)
    allow = [p for p in _dedupe(allow) if p not in gated]

    permissions: dict[str, Any] = {"allow": allow, "ask": ask, "deny": deny, "defaultMode": "default"}
    stamp = _timestamp(now)
    document: dict[str, Any] = {
        "$schema": SCHEMA_URL,
        "schemaVersion": target_version,
        "permissions": permissions,
    }
    hooks = merge_hooks(own_hooks, repository_safety_hooks(hook_config.guard_timeout_seconds))
    if hooks:
        document["hooks"] = hooks
    if env:
        document["env"] = env
    document["created"] = stamp
    document["lastUpdated"] = stamp

    logger.debug(
        "compiled policy: %d allow / %d ask / %d deny from %s",
        len(allow), len(ask), len(deny), [key for key, _ in contributions] or "baseline only",
    )
    return check_document(document)


def check_document(document: dict[str, Any]) -> ValidationResult:
    """Schema check plus the one-tier-per-pattern rule."""
    result = validate(document, DocumentShape.TIERED)
    if not result.ok:
        return result
    overlaps = _tier_overlaps(document["permissions"])
    if overlaps:
        return ValidationResult(ok=False, errors=tuple(overlaps))
    return result


def generate_local_policy(*, target_version: str, now: datetime | None = None) -> ValidationResult:
    """Personal, permissive template for the local (uncommitted) policy file."""
    stamp = _timestamp(now)
    document: dict[str, Any] = {
        "$schema": SCHEMA_URL,
        "schemaVersion": target_version,
        "permissions": {
            "allow": [
                "WebFetch(*)",
                "Read(**/*)",
                "Edit(**/*)",
                "Write(**/*)",
                "Glob(**/*)",
                "Grep(*)",
                "Bash(ls:*)",
                "Bash(cat:*)",
                "Bash(pwd:*)",
                "Bash(git:*)",
                "Bash(npm:*)",
                "Bash(node:*)",
                "Bash(npx:*)",
            ],
            "deny": list(FLOOR_DENY),
        },
        "created": stamp,
        "lastUpdated": stamp,
    }
    return check_document(document)
