"""Load application configuration from environment variables and run options from CLI/config file."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class ConfigLoadWarning(Exception):
    """An auxiliary config input is missing or unreadable.  Never fatal."""


@dataclass(frozen=True)
class LayoutConfig:
    """Where things live inside the project directory."""

    policy_dir: str = ".claude"
    policy_filename: str = "settings.json"
    local_policy_filename: str = "settings.local.json"
    commands_dirname: str = "commands"
    project_note: str = "CLAUDE.md"
    docs_dir: str = "docs"


@dataclass(frozen=True)
class ReconcileConfig:
    target_version: str = "2.0.0"
    note_max_age_days: float = 7.0
    docs_max_age_days: float = 7.0


@dataclass(frozen=True)
class HookConfig:
    typecheck_timeout_seconds: int = 10
    format_timeout_seconds: int = 5
    guard_timeout_seconds: int = 5


@dataclass(frozen=True)
class AppConfig:
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    hooks: HookConfig = field(default_factory=HookConfig)


@dataclass(frozen=True)
class RunOptions:
    """Every option the core consumes.  Booleans default False, lists default empty."""

    dry_run: bool = False
    yes: bool = False
    quiet: bool = False
    verbose: bool = False
    docs_only: bool = False
    no_docs: bool = False
    commands_only: bool = False
    settings_only: bool = False
    update: bool = False
    reset: bool = False
    safe_only: bool = False
    include_destructive: bool = False
    framework: tuple[str, ...] = ()
    language: tuple[str, ...] = ()
    output_dir: str | None = None
    config: str | None = None
    dev: bool = False

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> RunOptions:
        """Build options from a dict, accepting camelCase keys and ignoring unknown ones.

        Raises ConfigLoadWarning when a value does not have the option's type.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            name = _snake_case(key)
            if name not in known or value is None:
                continue
            kwargs[name] = _checked(name, value)
        return cls(**kwargs)


_LIST_OPTIONS = ("framework", "language")
_TEXT_OPTIONS = ("output_dir", "config")


def _checked(name: str, value: Any) -> Any:
    if name in _LIST_OPTIONS:
        if isinstance(value, str) or (
            isinstance(value, (list, tuple)) and all(isinstance(item, str) for item in value)
        ):
            return _split_list(value)
        raise ConfigLoadWarning(f"option {name!r} must be a string or a list of strings, got {value!r}")
    if name in _TEXT_OPTIONS:
        if isinstance(value, str):
            return value
        raise ConfigLoadWarning(f"option {name!r} must be a string, got {value!r}")
    if isinstance(value, bool):
        return value
    raise ConfigLoadWarning(f"option {name!r} must be true or false, got {value!r}")


def _snake_case(key: str) -> str:
    out = []
    for ch in key.replace("-", "_"):
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)


def _split_list(value: str | list[str] | tuple[str, ...]) -> tuple[str, ...]:
    items = value.split(",") if isinstance(value, str) else value
    return tuple(item.strip() for item in items if item.strip())


def _getenv(name: str, default: str | None = None) -> str | None:
    """os.getenv wrapper that strips inline comments (e.g. '7  # days' → '7')."""
    raw = os.getenv(name, default)
    if raw is None:
        return None
    # Split on first ' #' (space-hash) to drop inline comments, then strip
    return raw.split(" #")[0].strip()


def _getenv_number(name: str, default: str, cast: type) -> Any:
    raw = _getenv(name, default)
    try:
        return cast(raw)
    except (TypeError, ValueError):
        raise EnvironmentError(f"Environment variable {name} must be numeric, got {raw!r}")


def load_config() -> AppConfig:
    """Build AppConfig from environment. Raises EnvironmentError on malformed values."""
    return AppConfig(
        layout=LayoutConfig(
            policy_dir=_getenv("POLICY_DIR", ".claude"),  # type: ignore[arg-type]
            policy_filename=_getenv("POLICY_FILENAME", "settings.json"),  # type: ignore[arg-type]
            project_note=_getenv("PROJECT_NOTE_FILENAME", "CLAUDE.md"),  # type: ignore[arg-type]
            docs_dir=_getenv("DOCS_DIR", "docs"),  # type: ignore[arg-type]
        ),
        reconcile=ReconcileConfig(
            target_version=_getenv("POLICY_TARGET_VERSION", "2.0.0"),  # type: ignore[arg-type]
            note_max_age_days=_getenv_number("PROJECT_NOTE_MAX_AGE_DAYS", "7", float),
            docs_max_age_days=_getenv_number("DOCS_MAX_AGE_DAYS", "7", float),
        ),
        hooks=HookConfig(
            typecheck_timeout_seconds=_getenv_number("HOOK_TYPECHECK_TIMEOUT", "10", int),
            format_timeout_seconds=_getenv_number("HOOK_FORMAT_TIMEOUT", "5", int),
        ),
    )


# ── run options ───────────────────────────────────────────────────


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a JSON run-config file.  Raises ConfigLoadWarning if it cannot be used."""
    if not path.is_file():
        raise ConfigLoadWarning(f"Config file not found: {path}")
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigLoadWarning(f"Config file {path} is unreadable: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigLoadWarning(f"Config file {path} must contain a JSON object")
    return data


def load_run_options(cli_values: Mapping[str, Any]) -> RunOptions:
    """Merge CLI values over an optional config file.

    File values only fill options the command line left at their defaults.
    """
    cli = RunOptions.from_mapping(cli_values)
    if not cli.config:
        return cli

    try:
        file_values = read_config_file(Path(cli.config).expanduser().resolve())
        from_file = RunOptions.from_mapping(file_values)
    except ConfigLoadWarning as exc:
        logger.warning("%s — continuing with command-line options", exc)
        return cli

    defaults = RunOptions()
    merged: dict[str, Any] = {}
    for f in fields(RunOptions):
        cli_value = getattr(cli, f.name)
        if cli_value != getattr(defaults, f.name):
            merged[f.name] = cli_value
        else:
            merged[f.name] = getattr(from_file, f.name)
    logger.debug("loaded run options from %s", cli.config)
    return RunOptions(**merged)
