"""Render the project note (CLAUDE.md) from a ProjectProfile."""

from __future__ import annotations

from pathlib import Path

from core.models import ProjectProfile

_COMMANDS = {
    "javascript": ("npm install", "npm test", "npm run build"),
    "typescript": ("npx tsc --noEmit",),
    "python": ("pip install -r requirements.txt", "python -m pytest"),
    "go": ("go build ./...", "go test ./..."),
    "rust": ("cargo build", "cargo test"),
}


def render_project_note(profile: ProjectProfile, project_name: str) -> str:
    languages = ", ".join(sorted(profile.languages)) or "not detected"
    frameworks = ", ".join(sorted(profile.frameworks)) or "none detected"
    manager = profile.package_manager.value if profile.package_manager else "n/a"

    lines = [
        f"# {project_name}",
        "",
        "Guidance for the coding assistant working in this repository.",
        "",
        "## Stack",
        "",
        f"- Languages: {languages}",
        f"- Frameworks: {frameworks}",
        f"- Package manager: {manager}",
        "",
        "## Common commands",
        "",
    ]
    commands = [cmd for lang in sorted(profile.languages) for cmd in _COMMANDS.get(lang, ())]
    lines += [f"- `{cmd}`" for cmd in commands] or ["- (none detected)"]

    flags = profile.structure_flags
    lines += ["", "## Layout", ""]
    lines.append("- Source lives under src/, lib/ or app/." if flags.get("hasSource") else "- No conventional source directory detected.")
    lines.append("- Tests are present; run them before committing." if flags.get("hasTests") else "- No test directory detected.")
    if profile.frameworks:
        lines.append("- Framework reference notes are in docs/fetched/.")

    lines += [
        "",
        "## Rules",
        "",
        "- Permissions are defined in .claude/settings.json; personal overrides go in .claude/settings.local.json.",
        "- Never read or edit .env files or anything under secrets/.",
        "- Ask before installing dependencies, committing or pushing.",
        "",
    ]
    return "\n".join(lines)


def write_project_note(path: Path, profile: ProjectProfile) -> None:
    path.write_text(render_project_note(profile, path.parent.resolve().name), encoding="utf-8")
