"""Preview harness for the policy compiler.

Compiles a policy for forced languages / frameworks and prints it as JSON,
without scanning or touching any project directory.

Usage: python -m scripts.preview_policy --language typescript --framework react
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from core.config import RunOptions, load_config
from core.models import ProjectProfile
from core.policy_compiler import compile_policy

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--language", action="append", default=[])
    parser.add_argument("--framework", action="append", default=[])
    parser.add_argument("--package-manager", choices=["npm", "yarn", "pnpm", "bun"])
    parser.add_argument("--dependency", action="append", default=[])
    parser.add_argument("--safe-only", action="store_true")
    parser.add_argument("--include-destructive", action="store_true")
    args = parser.parse_args(argv)

    config = load_config()
    profile = ProjectProfile.build(
        languages=args.language,
        frameworks=args.framework,
        package_manager=args.package_manager,
        dependencies={name: "*" for name in args.dependency},
    )
    options = RunOptions(safe_only=args.safe_only, include_destructive=args.include_destructive)
    result = compile_policy(
        profile, options, target_version=config.reconcile.target_version, hook_config=config.hooks
    )
    if not result.ok:
        for issue in result.errors:
            logger.error("%s", issue)
        return 1
    print(json.dumps(result.document, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
