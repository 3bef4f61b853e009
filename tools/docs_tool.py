"""Framework reference notes — curated and offline.  No network access.

Each framework with a curated note gets it written to docs/fetched/<name>.md;
anything else gets a stub pointing at the official site.  All written notes
are then combined into docs/combined-docs.md.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameworkDocs:
    title: str
    home: str
    essentials: tuple[str, ...] = ()


CURATED_DOCS: dict[str, FrameworkDocs] = {
    "react": FrameworkDocs(
        "React",
        "https://react.dev/learn",
        (
            "Components are functions of props; keep them pure.",
            "State lives in the closest common parent; lift it instead of syncing copies.",
            "Effects are for synchronising with external systems, not for deriving state.",
            "Keys must be stable and unique among siblings.",
        ),
    ),
    "nextjs": FrameworkDocs(
        "Next.js",
        "https://nextjs.org/docs",
        (
            "The app/ router uses server components by default; mark client components with 'use client'.",
            "Route handlers live in app/**/route.ts.",
        ),
    ),
    "express": FrameworkDocs(
        "Express",
        "https://expressjs.com/en/guide/routing.html",
        (
            "Middleware runs in registration order; error handlers take four arguments.",
            "Always pass async errors to next(err) or use a wrapper.",
        ),
    ),
    "typescript": FrameworkDocs(
        "TypeScript",
        "https://www.typescriptlang.org/docs/",
        (
            "Prefer unknown over any at trust boundaries and narrow explicitly.",
            "Run `tsc --noEmit` to type-check without producing output.",
        ),
    ),
    "django": FrameworkDocs(
        "Django",
        "https://docs.djangoproject.com/",
        ("Run `python manage.py check` after settings changes.", "Never edit applied migrations."),
    ),
}

_STUB_HOMES = {
    "vue": "https://vuejs.org/guide/",
    "astro": "https://docs.astro.build/",
    "prisma": "https://www.prisma.io/docs",
    "drizzle": "https://orm.drizzle.team/docs/overview",
    "flask": "https://flask.palletsprojects.com/",
    "fastapi": "https://fastapi.tiangolo.com/",
}


def render_framework_doc(framework: str, now: datetime) -> str:
    docs = CURATED_DOCS.get(framework)
    if docs is None:
        home = _STUB_HOMES.get(framework, "the official documentation")
        return (
            f"# {framework} Documentation\n\n"
            f"No curated notes for {framework} yet.  See {home}.\n\n"
            f"Generated: {now.isoformat()}\n"
        )
    lines = [f"# {docs.title} Documentation", "", f"Official docs: {docs.home}", "", "## Essentials", ""]
    lines += [f"- {item}" for item in docs.essentials]
    lines += ["", f"Generated: {now.isoformat()}", ""]
    return "\n".join(lines)


def write_documentation(docs_dir: Path, frameworks: tuple[str, ...], now: datetime | None = None) -> list[Path]:
    """Write one note per framework plus the combined file.  Returns the per-framework paths."""
    now = now or datetime.now(timezone.utc)
    fetched_dir = docs_dir / "fetched"
    fetched_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for framework in frameworks:
        path = fetched_dir / f"{framework}.md"
        path.write_text(render_framework_doc(framework, now), encoding="utf-8")
        written.append(path)
        logger.info("  %s notes → %s", framework, path.name)

    if written:
        combine_documentation(docs_dir, written, now)
    return written


def combine_documentation(docs_dir: Path, paths: list[Path], now: datetime) -> Path:
    combined = docs_dir / "combined-docs.md"
    parts = ["# Project Documentation", "", f"> Generated on {now.isoformat()}", "", "## Table of Contents", ""]
    parts += [f"- [{p.stem}](#{p.stem.lower()})" for p in paths]
    parts += ["", "---", ""]
    for path in paths:
        parts += [f"## {path.stem}", "", path.read_text(encoding="utf-8"), "---", ""]
    combined.write_text("\n".join(parts), encoding="utf-8")
    return combined
