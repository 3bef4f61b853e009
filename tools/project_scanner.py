"""Manifest-file scanner — builds a ProjectProfile from the files at the project root.

Heuristic only: it reads package.json, requirements.txt and a handful of marker
files.  Anything it misses can be forced with --language / --framework.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from core.models import PackageManager, ProjectProfile

logger = logging.getLogger(__name__)

# dependency name → framework key
_NODE_FRAMEWORKS = {
    "react": "react",
    "next": "nextjs",
    "vue": "vue",
    "astro": "astro",
    "express": "express",
    "@prisma/client": "prisma",
    "drizzle-orm": "drizzle",
}
_PYTHON_FRAMEWORKS = {"django": "django", "flask": "flask", "fastapi": "fastapi"}

# lockfile → package manager, first match wins
_LOCKFILES = (
    ("bun.lockb", PackageManager.BUN),
    ("pnpm-lock.yaml", PackageManager.PNPM),
    ("yarn.lock", PackageManager.YARN),
)

_REQUIREMENT_NAME = re.compile(r"^([A-Za-z0-9_.-]+)\s*(.*)$")


def parse_requirements(text: str) -> dict[str, str]:
    """Map each requirement name (lower-cased) to its version spec, '*' when unpinned."""
    deps: dict[str, str] = {}
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        match = _REQUIREMENT_NAME.match(line)
        if match:
            deps[match.group(1).lower()] = match.group(2).strip() or "*"
    return deps


def _read_package_json(path: Path) -> dict[str, str]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("could not read %s: %s", path, exc)
        return {}
    deps: dict[str, str] = {}
    for section in ("dependencies", "devDependencies"):
        for name, version in (data.get(section) or {}).items():
            deps[name] = str(version)
    return deps


def _structure_flags(root: Path) -> dict[str, bool]:
    names = {p.name for p in root.iterdir()} if root.is_dir() else set()
    return {
        "hasSource": bool(names & {"src", "lib", "app", "components"}),
        "hasTests": bool(names & {"test", "tests", "__tests__", "spec"}),
        "hasDocs": bool(names & {"docs", "documentation", "README.md"}),
        "hasDocker": bool(names & {"Dockerfile", "docker-compose.yml", "compose.yaml"}),
    }


def scan_project(root: Path) -> ProjectProfile:
    """Build a profile from manifest files under *root*."""
    languages: set[str] = set()
    frameworks: set[str] = set()
    dependencies: dict[str, str] = {}
    package_manager: PackageManager | None = None

    package_json = root / "package.json"
    if package_json.is_file():
        node_deps = _read_package_json(package_json)
        dependencies.update(node_deps)
        languages.add("javascript")
        if "typescript" in node_deps or "@types/node" in node_deps:
            languages.add("typescript")
        frameworks.update(fw for dep, fw in _NODE_FRAMEWORKS.items() if dep in node_deps)
        if (root / "prisma" / "schema.prisma").is_file():
            frameworks.add("prisma")
        package_manager = PackageManager.NPM
        for lockfile, manager in _LOCKFILES:
            if (root / lockfile).is_file():
                package_manager = manager
                break

    requirements = root / "requirements.txt"
    if requirements.is_file() or (root / "pyproject.toml").is_file():
        languages.add("python")
        if requirements.is_file():
            py_deps = parse_requirements(requirements.read_text(encoding="utf-8"))
            dependencies.update(py_deps)
            frameworks.update(fw for dep, fw in _PYTHON_FRAMEWORKS.items() if dep in py_deps)

    if (root / "go.mod").is_file():
        languages.add("go")
    if (root / "Cargo.toml").is_file():
        languages.add("rust")

    flags = _structure_flags(root)
    if flags["hasDocker"]:
        dependencies.setdefault("docker", "*")

    profile = ProjectProfile.build(
        languages=sorted(languages),
        frameworks=sorted(frameworks),
        package_manager=package_manager,
        dependencies=dependencies,
        structure_flags=flags,
    )
    logger.debug("scanned %s → %s", root, profile.to_dict())
    return profile


def apply_overrides(
    profile: ProjectProfile, languages: tuple[str, ...], frameworks: tuple[str, ...]
) -> ProjectProfile:
    """Replace detected languages/frameworks with forced ones.  Returns a new profile."""
    if not languages and not frameworks:
        return profile
    return ProjectProfile(
        languages=frozenset(languages) if languages else profile.languages,
        frameworks=frozenset(frameworks) if frameworks else profile.frameworks,
        package_manager=profile.package_manager,
        dependencies=profile.dependencies,
        structure_flags=profile.structure_flags,
    )
