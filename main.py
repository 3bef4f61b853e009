"""Entry point: options → config → scan project → inspect existing setup → plan → run."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from core.action_planner import plan_actions
from core.config import load_config, load_run_options
from core.reconciler import setup_status
from core.schema_validator import ValidationError
from core.setup_runner import SetupError, SetupRunner
from tools.project_scanner import apply_overrides, scan_project
from tools.setup_inspector import inspect_setup

logger = logging.getLogger(__name__)


def _comma_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="policy-setup",
        description="Generate and safely update the coding-assistant permission policy for a project",
    )
    parser.add_argument("-d", "--dry-run", action="store_true", help="analyze without making changes")
    parser.add_argument("-y", "--yes", action="store_true", help="non-interactive run (accepted for compatibility)")
    parser.add_argument("-q", "--quiet", action="store_true", help="only log warnings and errors")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--docs-only", action="store_true", help="only write framework reference notes")
    parser.add_argument("--no-docs", action="store_true", help="skip framework reference notes")
    parser.add_argument("--commands-only", action="store_true", help="only install command templates")
    parser.add_argument("--settings-only", action="store_true", help="only (re)write the policy document")
    parser.add_argument("--update", action="store_true", help="update an existing setup")
    parser.add_argument("--reset", action="store_true", help="start fresh (backups are kept)")
    parser.add_argument("--safe-only", action="store_true", help="only ultra-safe read-only permissions")
    parser.add_argument(
        "--include-destructive",
        action="store_true",
        help="also allow reversible, path-scoped destructive operations",
    )
    parser.add_argument("--framework", type=_comma_list, help="force frameworks (comma-separated)")
    parser.add_argument("--language", type=_comma_list, help="force languages (comma-separated)")
    parser.add_argument("--output-dir", help="project directory (default: current directory)")
    parser.add_argument("--config", help="JSON file with default run options")
    parser.add_argument("--dev", action="store_true", help="development mode: debug logging and tracebacks")
    return parser.parse_args(argv)


def _configure_logging(quiet: bool, verbose: bool, dry_run: bool = False) -> None:
    level = logging.WARNING if quiet else logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        # a dry run prints its plan as JSON on stdout
        stream=sys.stderr if dry_run else sys.stdout,
        force=True,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.quiet, args.verbose or args.dev, args.dry_run)
    options = load_run_options(vars(args))
    _configure_logging(options.quiet, options.verbose or options.dev, options.dry_run)
    root = Path(options.output_dir).expanduser().resolve() if options.output_dir else Path.cwd()
    logger.info("starting up (root=%s dry_run=%s)", root, options.dry_run)

    try:
        config = load_config()
        profile = apply_overrides(scan_project(root), options.language, options.framework)
        existing = inspect_setup(root, config)
        actions = plan_actions(existing, profile, options)
        status = setup_status(existing, options)
        logger.info("setup status: %s", status.value)

        if options.dry_run:
            print(
                json.dumps(
                    {
                        "profile": profile.to_dict(),
                        "existing": existing.to_dict(),
                        "status": status.value,
                        "actions": [a.to_dict() for a in actions],
                        "overridesApplied": bool(options.language or options.framework),
                    },
                    indent=2,
                )
            )
            return 0

        if not actions:
            logger.info("project is already configured — nothing to do")
            return 0
        for action in actions:
            logger.info("planned: %s", action.describe())

        SetupRunner(root, config, profile, options, existing=existing).run(actions)
    except ValidationError as exc:
        logger.error("%s", exc)
        return 1
    except (SetupError, EnvironmentError) as exc:
        if options.dev or options.verbose:
            logger.exception("setup failed")
        else:
            logger.error("setup failed: %s", exc)
        return 1

    logger.info("─── done ───")
    return 0


if __name__ == "__main__":
    sys.exit(main())
