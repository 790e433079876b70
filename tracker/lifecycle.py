"""Bug lifecycle engine: reporting, assignment, resolution and field overrides.

Status flow is OPEN -> IN_PROGRESS -> RESOLVED (see ``tracker.states``).
Permission checks go through ``tracker.policy``:

- report:   any member of the bug's project
- assign:   Elevated members; at most one assignee at a time
- unassign: the current assignee, whatever the status
- resolve:  the current assignee, whatever the status
- update:   Elevated members; overwrites fields without the transition table

Each function takes the acting user explicitly and returns a fresh snapshot
of the bug read back from the database.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from tracker import policy
from tracker.errors import Conflict, Forbidden, InvalidInput, NotFound
from tracker.models import Bug, Priority, Project, Severity, Status, User
from tracker.states import is_valid_status, next_status

logger = logging.getLogger("tracker.lifecycle")

UPDATABLE_FIELDS = (
    "description",
    "severity",
    "priority",
    "status",
    "commit_link",
    "resolved_commit_link",
    "assigned_to",
)


def find_bug(bug_id) -> Bug:
    """Return the bug with ``bug_id`` or raise ``NotFound``."""
    try:
        return Bug.objects.select_related("project", "reporter", "assigned_to").get(pk=bug_id)
    except (Bug.DoesNotExist, ValueError, TypeError):
        raise NotFound("Bug does not exist")


def bugs_for_project(project: Project):
    """All bugs of a project, newest first, with reporter and assignee joined."""
    return Bug.objects.filter(project=project).select_related("reporter", "assigned_to")


def _check_choice(name: str, value, choices) -> None:
    if not isinstance(value, str) or value not in choices.values:
        allowed = ", ".join(choices.values)
        raise InvalidInput(f"{name} must be one of: {allowed}")


def _check_text(name: str, value, required: bool = False) -> None:
    if value is None and not required:
        return
    if not isinstance(value, str):
        raise InvalidInput(f"{name} must be a string")
    if required and not value.strip():
        raise InvalidInput(f"{name} is required")


def report(
    actor: User,
    project: Project,
    description: str,
    severity: str | None = None,
    priority: str | None = None,
    commit_link: str | None = None,
) -> Bug:
    """Record a new OPEN, unassigned bug reported by ``actor``.

    Raises:
        Forbidden: If the actor holds no role in the project.
        InvalidInput: If the description is empty or severity/priority are
            outside their allowed values.
    """
    if not policy.is_member(actor, project):
        raise Forbidden("You must be a project member to report bugs")

    if not description:
        raise InvalidInput("description is required")
    _check_text("description", description, required=True)
    _check_text("commit_link", commit_link)

    severity = severity or Severity.MEDIUM
    priority = priority or Priority.NORMAL
    _check_choice("severity", severity, Severity)
    _check_choice("priority", priority, Priority)

    bug = Bug.objects.create(
        project=project,
        description=description,
        severity=severity,
        priority=priority,
        commit_link=commit_link or None,
        reporter=actor,
    )
    logger.info("User %s reported bug %s in project %s", actor.pk, bug.pk, project.pk)
    return bug


def assign(actor: User, bug: Bug) -> Bug:
    """Make ``actor`` the bug's assignee and move it to IN_PROGRESS.

    The assignee check and write are a single conditional UPDATE, so when two
    members race for an unassigned bug exactly one row update succeeds and the
    other caller sees ``Conflict``. Re-assigning an IN_PROGRESS bug to its
    current assignee succeeds without writing anything.

    Raises:
        Forbidden: If the actor is not Elevated in the bug's project.
        Conflict: If another user is already assigned.
    """
    if not policy.is_elevated(actor, bug.project):
        raise Forbidden("Only elevated members can assign bugs")

    with transaction.atomic():
        row = Bug.objects.filter(pk=bug.pk).values_list("status", "assigned_to_id").first()
        if row is None:
            raise NotFound("Bug does not exist")
        current, assignee_id = row
        if assignee_id == actor.pk and current == Status.IN_PROGRESS:
            return find_bug(bug.pk)
        status = next_status(current, "assign")

        updated = (
            Bug.objects.filter(pk=bug.pk)
            .filter(Q(assigned_to__isnull=True) | Q(assigned_to=actor))
            .update(assigned_to=actor, status=status, updated_at=timezone.now())
        )
        if not updated:
            raise Conflict("Bug is already assigned to someone else")

    logger.info("User %s assigned bug %s to themselves", actor.pk, bug.pk)
    return find_bug(bug.pk)


def _locked(bug: Bug) -> Bug:
    try:
        return Bug.objects.select_for_update().get(pk=bug.pk)
    except Bug.DoesNotExist:
        raise NotFound("Bug does not exist")


def unassign(actor: User, bug: Bug) -> Bug:
    """Release a bug held by ``actor``; it goes back to OPEN.

    No status precondition is applied: the assignee of a RESOLVED bug can
    still unassign it.
    """
    with transaction.atomic():
        stored = _locked(bug)
        if not policy.is_assignee(actor, stored):
            raise Forbidden("You can only unassign a bug assigned to you")

        stored.status = next_status(stored.status, "unassign")
        stored.assigned_to = None
        stored.save(update_fields=["status", "assigned_to", "updated_at"])

    logger.info("User %s unassigned bug %s", actor.pk, bug.pk)
    return find_bug(bug.pk)


def resolve(actor: User, bug: Bug, resolved_commit_link: str | None = None) -> Bug:
    """Mark a bug RESOLVED; only its assignee may do so.

    ``resolved_commit_link`` is always written: omitting it stores null rather
    than keeping any earlier value.
    """
    _check_text("resolved_commit_link", resolved_commit_link)

    with transaction.atomic():
        stored = _locked(bug)
        if not policy.is_assignee(actor, stored):
            raise Forbidden("Only the assignee can resolve this bug")

        stored.status = next_status(stored.status, "resolve")
        stored.resolved_commit_link = resolved_commit_link or None
        stored.save(update_fields=["status", "resolved_commit_link", "updated_at"])

    logger.info("User %s resolved bug %s (commit=%s)", actor.pk, bug.pk, stored.resolved_commit_link)
    return find_bug(bug.pk)


def _resolve_assignee(value) -> User | None:
    if value in (None, ""):
        return None
    if isinstance(value, User):
        return value
    # bool is an int subclass; a JSON true must not select user 1
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidInput("assigned_to must be a user id")
    try:
        return User.objects.get(pk=int(value))
    except ValueError:
        raise InvalidInput("assigned_to must be a user id")
    except User.DoesNotExist:
        raise NotFound("Assignee does not exist")


def _clean_fields(fields: dict) -> dict:
    unknown = sorted(set(fields) - set(UPDATABLE_FIELDS))
    if unknown:
        raise InvalidInput(f"Cannot update field(s): {', '.join(unknown)}")

    cleaned = dict(fields)
    if "description" in cleaned:
        _check_text("description", cleaned["description"], required=True)
    for name in ("commit_link", "resolved_commit_link"):
        if name in cleaned:
            _check_text(name, cleaned[name])
    if "severity" in cleaned:
        _check_choice("severity", cleaned["severity"], Severity)
    if "priority" in cleaned:
        _check_choice("priority", cleaned["priority"], Priority)
    if "status" in cleaned and not is_valid_status(cleaned["status"]):
        raise InvalidInput(f"Unknown status '{cleaned['status']}'")
    if "assigned_to" in cleaned:
        cleaned["assigned_to"] = _resolve_assignee(cleaned["assigned_to"])
    return cleaned


def update(actor: User, bug: Bug, fields: dict) -> Bug:
    """Administrative override of bug fields by an Elevated member.

    Provided fields are written as given, including ``status`` and
    ``assigned_to``, without consulting the transition table.
    """
    if not policy.is_elevated(actor, bug.project):
        raise Forbidden("Only elevated members can modify bugs")

    cleaned = _clean_fields(fields)

    with transaction.atomic():
        stored = _locked(bug)
        for name, value in cleaned.items():
            setattr(stored, name, value)
        stored.save(update_fields=[*cleaned, "updated_at"])

    logger.info("User %s updated bug %s fields %s", actor.pk, bug.pk, sorted(cleaned))
    return find_bug(bug.pk)
