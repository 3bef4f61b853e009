"""Turn the existing setup snapshot, profile and options into an ordered action list.

The *-only options short-circuit everything else.  In the normal path the
structural actions (create / update / generate / resolve) come first and the
documentation fetch, if any, is always last.
"""

from __future__ import annotations

from core.config import RunOptions
from core.models import Action, ActionType, ExistingSetupState, ProjectProfile

FULL_SETUP = "full-setup"
SETTINGS = "settings"
CONFIGURATION = "configuration"
COMMANDS = "commands"
PROJECT_NOTE = "project-note"
CONFLICTS = "conflicts"
DOCUMENTATION = "documentation"

PLACEHOLDER_CONFLICT = "placeholder"


def _fetch_docs(profile: ProjectProfile) -> Action:
    return Action(ActionType.FETCH, DOCUMENTATION, tuple(sorted(profile.frameworks)))


def plan_actions(
    existing: ExistingSetupState, profile: ProjectProfile, options: RunOptions
) -> list[Action]:
    if options.docs_only:
        return [_fetch_docs(profile)] if profile.frameworks else []
    if options.commands_only:
        return [Action(ActionType.UPDATE, COMMANDS)]
    if options.settings_only:
        return [Action(ActionType.CREATE, SETTINGS)]

    actions: list[Action] = []
    if not existing.has_setup or options.reset:
        actions.append(Action(ActionType.CREATE, FULL_SETUP))
    else:
        if existing.is_stale or options.update:
            actions.append(Action(ActionType.UPDATE, CONFIGURATION))
        if not existing.has_policy_document:
            actions.append(Action(ActionType.CREATE, SETTINGS))
        if not existing.has_project_note or PLACEHOLDER_CONFLICT in existing.conflicts:
            actions.append(Action(ActionType.GENERATE, PROJECT_NOTE))
        if existing.conflicts:
            actions.append(Action(ActionType.RESOLVE, CONFLICTS, tuple(existing.conflicts)))

    if not options.no_docs and profile.frameworks:
        actions.append(_fetch_docs(profile))
    return actions
