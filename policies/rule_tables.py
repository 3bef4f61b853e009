"""Declarative permission rule tables.

Patterns use the enforcing runtime's ``Category(argument-glob)`` syntax and are
treated as opaque strings everywhere in this repository.  The compiler in
core/policy_compiler.py folds these tables into a policy document; nothing here
has behaviour beyond the registry duplicate-key check.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping


@dataclass(frozen=True)
class RuleContribution:
    """What one capability (language, framework, tool…) adds to a policy."""

    allow: tuple[str, ...] = ()
    ask: tuple[str, ...] = ()
    deny: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    # Command run after Edit/Write to verify the project (e.g. a no-emit type check).
    verify_command: str | None = None
    # Command run after Edit/Write to format touched files.
    format_command: str | None = None


def build_registry(
    name: str, entries: Iterable[tuple[str, RuleContribution]]
) -> Mapping[str, RuleContribution]:
    """Freeze *entries* into a read-only mapping.  Raises ValueError on duplicate keys."""
    registry: dict[str, RuleContribution] = {}
    for key, contribution in entries:
        if key in registry:
            raise ValueError(f"duplicate key '{key}' in {name} rule registry")
        registry[key] = contribution
    return MappingProxyType(registry)


# ── baseline ──────────────────────────────────────────────────────

CORE_SAFE_READS: tuple[str, ...] = (
    # File operations
    "Read(**/*)",
    "Edit(**/*)",
    "Write(**/*)",
    # Search and navigation
    "Glob(**/*)",
    "Grep(*)",
    # Read-only shell
    "Bash(ls:*)",
    "Bash(cat:*)",
    "Bash(head:*)",
    "Bash(tail:*)",
    "Bash(pwd:*)",
    "Bash(which:*)",
    # Version control, read side
    "Bash(git status:*)",
    "Bash(git diff:*)",
    "Bash(git log:*)",
    "Bash(git show:*)",
    "Bash(git branch:*)",
    # System info
    "Bash(uname:*)",
    "Bash(whoami:*)",
    "WebFetch(*)",
)

CORE_ASK: tuple[str, ...] = (
    "Bash(git commit:*)",
    "Bash(git push:*)",
)

# Never removed, whatever the options say.
FLOOR_DENY: tuple[str, ...] = (
    # Credentials
    "Read(.env*)",
    "Read(**/.env*)",
    "Read(secrets/**)",
    "Read(credentials.*)",
    "Edit(.env*)",
    "Write(.env*)",
    # Irreversible or privileged
    "Bash(rm:*)",
    "Bash(rmdir:*)",
    "Bash(sudo:*)",
    "Bash(curl:*)",
    "Bash(chmod:*)",
    "Bash(chown:*)",
)

SAFE_ONLY_ALLOW: tuple[str, ...] = (
    "Read(**/*)",
    "Glob(**/*)",
    "Grep(*)",
    "Bash(ls:*)",
    "Bash(cat:*)",
    "Bash(git status:*)",
)

# Destructive-looking but undoable.  Never an rm pattern.
REVERSIBLE_DESTRUCTIVE: tuple[str, ...] = (
    "Bash(touch:*.tmp)",
    "Bash(mv:*.bak)",
    "Bash(git stash:*)",
    "Bash(git restore --staged:*)",
    "Bash(mkdir:*)",
)

_NODE_ENV = MappingProxyType({"NODE_ENV": "development"})

# ── languages ─────────────────────────────────────────────────────

_NODE_BASE = RuleContribution(
    allow=(
        "Bash(node --version:*)",
        "Bash(npm --version:*)",
        "Bash(npm list:*)",
        "Bash(npm outdated:*)",
        "Bash(npm view:*)",
        "Read(package.json)",
        "Read(package-lock.json)",
        "Read(tsconfig.json)",
    ),
    ask=(
        "Bash(npm install:*)",
        "Bash(npm ci:*)",
        "Bash(npm run build:*)",
        "Bash(npm run test:*)",
    ),
)

LANGUAGE_RULES = build_registry(
    "language",
    [
        ("javascript", _NODE_BASE),
        (
            "typescript",
            RuleContribution(
                allow=_NODE_BASE.allow + ("Bash(npx tsc --noEmit:*)",),
                ask=_NODE_BASE.ask,
                verify_command="npx tsc --noEmit",
            ),
        ),
        (
            "python",
            RuleContribution(
                allow=(
                    "Bash(python --version:*)",
                    "Bash(pip list:*)",
                    "Bash(pip show:*)",
                    "Read(requirements.txt)",
                    "Read(pyproject.toml)",
                ),
                ask=("Bash(pip install:*)",),
            ),
        ),
        (
            "go",
            RuleContribution(
                allow=(
                    "Bash(go version:*)",
                    "Bash(go list:*)",
                    "Bash(go vet:*)",
                    "Read(go.mod)",
                    "Read(go.sum)",
                ),
                ask=("Bash(go get:*)",),
                verify_command="go vet ./...",
            ),
        ),
        (
            "rust",
            RuleContribution(
                allow=(
                    "Bash(cargo --version:*)",
                    "Bash(rustc --version:*)",
                    "Read(Cargo.toml)",
                    "Read(Cargo.lock)",
                ),
                ask=("Bash(cargo build:*)",),
            ),
        ),
    ],
)

# ── package managers (only applied for node-ecosystem languages) ──

PACKAGE_MANAGER_RULES = build_registry(
    "package manager",
    [
        ("npm", RuleContribution()),
        ("yarn", RuleContribution(allow=("Bash(yarn list:*)",), ask=("Bash(yarn install:*)", "Bash(yarn add:*)"))),
        ("pnpm", RuleContribution(allow=("Bash(pnpm list:*)",), ask=("Bash(pnpm install:*)", "Bash(pnpm add:*)"))),
        ("bun", RuleContribution(allow=("Bash(bun --version:*)",), ask=("Bash(bun install:*)",))),
    ],
)

# ── frameworks ────────────────────────────────────────────────────

_WEB_APP_READS = ("Read(pages/**/*)", "Read(app/**/*)", "Read(public/**/*)")

FRAMEWORK_RULES = build_registry(
    "framework",
    [
        ("react", RuleContribution(allow=_WEB_APP_READS, env=_NODE_ENV)),
        ("nextjs", RuleContribution(allow=_WEB_APP_READS + ("Read(next.config.*)",), env=_NODE_ENV)),
        (
            "astro",
            RuleContribution(
                allow=("Read(astro.config.*)", "Read(src/pages/**/*)", "Read(src/components/**/*)"),
                env=_NODE_ENV,
            ),
        ),
        ("express", RuleContribution(allow=("Read(routes/**/*)",), env=_NODE_ENV)),
        ("vue", RuleContribution(allow=("Read(vite.config.*)",), env=_NODE_ENV)),
        (
            "prisma",
            RuleContribution(
                allow=("Read(prisma/schema.prisma)", "Bash(npx prisma:*)"),
                # Migrations rewrite the database; keep them out of reach.
                deny=("Bash(npx prisma migrate:*)",),
            ),
        ),
        ("drizzle", RuleContribution(allow=("Read(drizzle.config.*)", "Read(drizzle/**/*)"))),
        (
            "django",
            RuleContribution(
                allow=("Bash(python manage.py check:*)", "Bash(python manage.py showmigrations:*)"),
                ask=("Bash(python manage.py migrate:*)",),
            ),
        ),
        ("flask", RuleContribution(allow=("Bash(flask routes:*)",))),
        ("fastapi", RuleContribution(allow=("Read(openapi.json)",))),
    ],
)

# ── dependencies ──────────────────────────────────────────────────

DEPENDENCY_RULES = build_registry(
    "dependency",
    [
        ("docker", RuleContribution(allow=("Bash(docker ps:*)", "Bash(docker images:*)", "Bash(docker logs:*)"))),
        ("prettier", RuleContribution(format_command='npx prettier --write "$CLAUDE_FILE_PATHS"')),
        ("black", RuleContribution(format_command='black --quiet "$CLAUDE_FILE_PATHS"')),
    ],
)
