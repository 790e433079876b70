"""Authorization predicates.

Every permission decision in the tracker is expressed with these three checks.
They read membership data and never write anything.
"""

from __future__ import annotations

from tracker import membership
from tracker.models import Bug, Project, Role, User


def is_elevated(user: User, project: Project) -> bool:
    return membership.has_role(user, project, Role.ELEVATED)


def is_member(user: User, project: Project) -> bool:
    return membership.role_of(user, project) is not None


def is_assignee(user: User, bug: Bug) -> bool:
    """True when ``bug`` has an assignee and it is ``user``."""
    return bug.assigned_to_id is not None and bug.assigned_to_id == user.pk
