"""Membership registry: who holds which role in which project.

A (user, project) pair has at most one membership. Project creation writes the
creator's Elevated membership; ``join`` writes a Reporter membership. Roles are
never changed in place, and there is no leave operation, so once a membership
exists every further ``join`` for that pair is refused.
"""

from __future__ import annotations

import logging

from django.db import IntegrityError, transaction

from tracker import policy
from tracker.errors import AlreadyMember, Forbidden, InvalidInput, NotFound
from tracker.models import Membership, Project, Role, User

logger = logging.getLogger("tracker.membership")

PROJECT_FIELDS = ("name", "repository", "description")
REQUIRED_PROJECT_FIELDS = ("name", "repository")


def find_project(project_id) -> Project:
    """Return the project with ``project_id`` or raise ``NotFound``."""
    try:
        return Project.objects.get(pk=project_id)
    except (Project.DoesNotExist, ValueError, TypeError):
        raise NotFound("Project does not exist")


def has_role(user: User, project: Project, role: Role) -> bool:
    return Membership.objects.filter(user=user, project=project, role=role).exists()


def role_of(user: User, project: Project) -> Role | None:
    """Return the user's role in the project, or ``None`` when not a member."""
    role = (
        Membership.objects.filter(user=user, project=project)
        .values_list("role", flat=True)
        .first()
    )
    return Role(role) if role else None


def join(user: User, project: Project) -> Membership:
    """Add ``user`` to ``project`` as a Reporter.

    Raises:
        NotFound: If the project no longer exists.
        AlreadyMember: If the user already holds any role in the project.
    """
    if not Project.objects.filter(pk=project.pk).exists():
        raise NotFound("Project does not exist")
    if role_of(user, project) is not None:
        raise AlreadyMember()

    try:
        with transaction.atomic():
            membership = Membership.objects.create(user=user, project=project, role=Role.REPORTER)
    except IntegrityError:
        # Lost a race against a concurrent join for the same pair
        raise AlreadyMember()

    logger.info("User %s joined project %s as %s", user.pk, project.pk, membership.role)
    return membership


def _clean_required(fields: dict, names) -> None:
    for name in names:
        if name not in fields:
            continue
        if fields[name] is not None and not isinstance(fields[name], str):
            raise InvalidInput(f"{name} must be a string")
        if not (fields[name] or "").strip():
            raise InvalidInput(f"{name} is required")


def create_project(
    creator: User,
    name: str,
    repository: str,
    description: str | None = None,
) -> Project:
    """Create a project and make ``creator`` its first, Elevated, member."""
    _clean_required({"name": name, "repository": repository}, REQUIRED_PROJECT_FIELDS)

    with transaction.atomic():
        project = Project.objects.create(name=name, repository=repository, description=description)
        Membership.objects.create(user=creator, project=project, role=Role.ELEVATED)

    logger.info("User %s created project %s (%s)", creator.pk, project.pk, project.name)
    return project


def update_project(actor: User, project: Project, fields: dict) -> Project:
    """Overwrite project attributes; only Elevated members may do this."""
    if not policy.is_elevated(actor, project):
        raise Forbidden("Only elevated members can modify the project")

    unknown = sorted(set(fields) - set(PROJECT_FIELDS))
    if unknown:
        raise InvalidInput(f"Cannot update field(s): {', '.join(unknown)}")
    _clean_required(fields, REQUIRED_PROJECT_FIELDS)

    for name, value in fields.items():
        setattr(project, name, value)
    project.save()

    logger.info("User %s updated project %s fields %s", actor.pk, project.pk, sorted(fields))
    return project


def all_projects():
    return Project.objects.prefetch_related("memberships__user").order_by("id")


def members_of(project: Project):
    return Membership.objects.filter(project=project).select_related("user").order_by("id")


def memberships_for(user: User):
    """Return the user's memberships with their projects, for the "my projects" view."""
    return Membership.objects.filter(user=user).select_related("project").order_by("project_id")
