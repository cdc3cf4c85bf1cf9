from __future__ import annotations

from typing import List, Optional, Tuple

from app.models.issue import (
    STATUS_CLOSED,
    STATUS_CONFIRMED,
    STATUS_OPEN,
    STATUS_REOPENED,
    STATUS_RESOLVED,
)

# Transitions
CONFIRM = "confirm"
UNCONFIRM = "unconfirm"
REOPEN = "reopen"
RESOLVE = "resolve"
FALSE_POSITIVE = "falsepositive"

# Actions
COMMENT = "comment"
ASSIGN = "assign"
ASSIGN_TO_ME = "assign_to_me"
PLAN = "plan"
SET_SEVERITY = "set_severity"

# status -> ((transition, requires issue admin), ...)
_TRANSITIONS = {
    STATUS_OPEN: ((CONFIRM, False), (RESOLVE, False), (FALSE_POSITIVE, True)),
    STATUS_REOPENED: ((CONFIRM, False), (RESOLVE, False), (FALSE_POSITIVE, True)),
    STATUS_CONFIRMED: ((UNCONFIRM, False), (RESOLVE, False), (FALSE_POSITIVE, True)),
    STATUS_RESOLVED: ((REOPEN, False),),
    STATUS_CLOSED: (),
}


def transitions_from(status: Optional[str]) -> Tuple[Tuple[str, bool], ...]:
    return _TRANSITIONS.get(status or STATUS_OPEN, ())


def available_transitions(status: Optional[str], logged_in: bool, is_issue_admin: bool) -> List[str]:
    """Manual transitions a caller may apply to an issue in ``status``."""
    if not logged_in:
        return []
    return [name for name, admin_only in transitions_from(status) if is_issue_admin or not admin_only]


def available_actions(
    status: Optional[str],
    assignee: Optional[str],
    login: Optional[str],
    is_issue_admin: bool,
) -> List[str]:
    """Actions (other than transitions) a caller may run on an issue."""
    if login is None or status == STATUS_CLOSED:
        return []
    actions = [COMMENT, ASSIGN]
    if assignee != login:
        actions.append(ASSIGN_TO_ME)
    actions.append(PLAN)
    if is_issue_admin:
        actions.append(SET_SEVERITY)
    return actions
