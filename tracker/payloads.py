"""Plain-dict snapshots of tracker entities for JSON responses."""

from __future__ import annotations


def _timestamp(value) -> str | None:
    return value.isoformat() if value else None


def user_payload(user) -> dict | None:
    if user is None:
        return None
    return {"id": user.pk, "name": user.name, "email": user.email}


def membership_payload(membership) -> dict:
    return {
        "id": membership.pk,
        "user": user_payload(membership.user),
        "project_id": membership.project_id,
        "role": membership.role,
    }


def project_payload(project, members=None) -> dict:
    """Serialize a project; ``members`` adds the membership list when given."""
    data = {
        "id": project.pk,
        "name": project.name,
        "repository": project.repository,
        "description": project.description,
        "created_at": _timestamp(project.created_at),
        "updated_at": _timestamp(project.updated_at),
    }
    if members is not None:
        data["members"] = [membership_payload(m) for m in members]
    return data


def my_project_payload(membership) -> dict:
    """A project as seen by one of its members, including their display role."""
    return {**project_payload(membership.project), "my_role": membership.role}


def bug_payload(bug) -> dict:
    return {
        "id": bug.pk,
        "project_id": bug.project_id,
        "description": bug.description,
        "severity": bug.severity,
        "priority": bug.priority,
        "status": bug.status,
        "commit_link": bug.commit_link,
        "resolved_commit_link": bug.resolved_commit_link,
        "reporter": user_payload(bug.reporter),
        "assigned_to": user_payload(bug.assigned_to),
        "created_at": _timestamp(bug.created_at),
        "updated_at": _timestamp(bug.updated_at),
    }
