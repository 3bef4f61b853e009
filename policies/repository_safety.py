"""Repository-safety hook sub-policy.

Generated independently of the project profile: it write-protects version
control metadata and stops force-push style history rewrites.  The compiler
concatenates these matchers into its own hook map.
"""

from __future__ import annotations

from typing import Any

PRE_TOOL_USE = "PreToolUse"

# Hook commands read the tool call as JSON on stdin; exit code 2 blocks the call.
_GIT_DIR_GUARD = (
    "jq -r '.tool_input.file_path // empty' | grep -qE '(^|/)\\.git(/|$)' && exit 2 || exit 0"
)
_FORCE_PUSH_GUARD = (
    "jq -r '.tool_input.command // empty' "
    "| grep -qE 'git +push.*(--force|-f( |$)|--mirror)|git +reset +--hard|git +clean +-[a-z]*f' "
    "&& exit 2 || exit 0"
)


def repository_safety_hooks(timeout_seconds: int = 5) -> dict[str, list[dict[str, Any]]]:
    return {
        PRE_TOOL_USE: [
            {
                "matcher": "Edit|Write",
                "hooks": [
                    {
                        "type": "command",
                        "command": _GIT_DIR_GUARD,
                        "timeoutSeconds": timeout_seconds,
                        "continueOnError": False,
                    }
                ],
            },
            {
                "matcher": "Bash",
                "hooks": [
                    {
                        "type": "command",
                        "command": _FORCE_PUSH_GUARD,
                        "timeoutSeconds": timeout_seconds,
                        "continueOnError": False,
                    }
                ],
            },
        ]
    }
