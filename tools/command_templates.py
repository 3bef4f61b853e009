"""Slash-command templates copied into the policy directory.  Existing files are left alone."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

TEMPLATES: dict[str, str] = {
    "generate-tests.md": (
        "Write tests for $ARGUMENTS.\n\n"
        "1. Read the code under test and its existing tests.\n"
        "2. Cover the happy path, edge cases and error handling.\n"
        "3. Follow the conventions of the existing test suite.\n"
    ),
    "plan-feature.md": (
        "Plan the feature: $ARGUMENTS\n\n"
        "List the files to change, the new types or functions, the tests to add and open questions.\n"
        "Do not write code yet.\n"
    ),
    "review-code.md": (
        "Review $ARGUMENTS for correctness, error handling, naming and test coverage.\n"
        "Report findings ordered by severity with file:line references.\n"
    ),
    "fix-github-issue.md": (
        "Fix issue $ARGUMENTS.\n\n"
        "Reproduce it with a failing test first, then make the smallest change that fixes it.\n"
    ),
    "debug-logs.md": (
        "Read the logs in $ARGUMENTS, identify the first error and trace it back to its cause in the code.\n"
    ),
    "refactor-code.md": (
        "Refactor $ARGUMENTS without changing behaviour.  Run the tests before and after.\n"
    ),
}


def install_templates(commands_dir: Path) -> list[Path]:
    """Write missing templates to *commands_dir*.  Returns the paths that were created."""
    commands_dir.mkdir(parents=True, exist_ok=True)
    created: list[Path] = []
    for name, body in TEMPLATES.items():
        target = commands_dir / name
        if target.exists():
            logger.debug("keeping existing command template %s", name)
            continue
        target.write_text(body, encoding="utf-8")
        created.append(target)
    return created
