"""REST views for accounts, projects, memberships, and bugs.

Views only translate HTTP into core calls: they resolve the acting user and
the referenced entities, call ``tracker.membership`` / ``tracker.lifecycle``,
and map ``TrackerError`` subclasses onto their status codes.
"""

import logging

from django.http import JsonResponse
from rest_framework.decorators import api_view
from rest_framework.response import Response

from tracker import identity, lifecycle, membership
from tracker.errors import TrackerError
from tracker.payloads import (
    bug_payload,
    membership_payload,
    my_project_payload,
    project_payload,
    user_payload,
)

logger = logging.getLogger("tracker.views")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _failure(request, exc: TrackerError) -> Response:
    logger.warning(
        "%s %s refused (%s): %s",
        request.method, request.path, type(exc).__name__, exc.detail,
    )
    return Response({"message": exc.detail}, status=exc.status_code)


def _body(request) -> dict:
    """Return the request body as a flat dict (last value wins for form data)."""
    return dict(request.data.items()) if isinstance(request.data, dict) else {}


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

def health_check(request):
    """Return a simple health-check response."""
    return JsonResponse({"status": "ok"})


@api_view(["POST"])
def register(request):
    data = _body(request)
    try:
        user = identity.register(data.get("name"), data.get("email"), data.get("password"))
    except TrackerError as e:
        return _failure(request, e)
    return Response(user_payload(user), status=201)


@api_view(["POST"])
def login(request):
    """Check credentials and return the user; clients send its id back in the identity header."""
    data = _body(request)
    try:
        user = identity.login(data.get("email"), data.get("password"))
    except TrackerError as e:
        return _failure(request, e)
    return Response(user_payload(user))


@api_view(["GET"])
def me(request):
    try:
        user = identity.resolve_user(request)
    except TrackerError as e:
        return _failure(request, e)
    return Response(user_payload(user))


# ---------------------------------------------------------------------------
# Projects and memberships
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
def projects(request):
    """GET lists every project with its members; POST creates one."""
    if request.method == "GET":
        return Response([
            project_payload(p, members=p.memberships.all())
            for p in membership.all_projects()
        ])

    data = _body(request)
    try:
        user = identity.resolve_user(request)
        project = membership.create_project(
            user,
            name=data.get("name"),
            repository=data.get("repository"),
            description=data.get("description"),
        )
    except TrackerError as e:
        return _failure(request, e)
    return Response(project_payload(project), status=201)


@api_view(["GET", "PUT"])
def project_detail(request, project_id):
    """GET returns one project with members; PUT updates it (Elevated only)."""
    try:
        if request.method == "GET":
            project = membership.find_project(project_id)
            return Response(project_payload(project, members=membership.members_of(project)))

        user = identity.resolve_user(request)
        project = membership.find_project(project_id)
        project = membership.update_project(user, project, _body(request))
        return Response(project_payload(project))

    except TrackerError as e:
        return _failure(request, e)


@api_view(["POST"])
def project_join(request, project_id):
    try:
        user = identity.resolve_user(request)
        project = membership.find_project(project_id)
        member = membership.join(user, project)
    except TrackerError as e:
        return _failure(request, e)
    return Response({"message": "Joined as tester", "member": membership_payload(member)}, status=201)


@api_view(["GET"])
def project_members(request, project_id):
    try:
        project = membership.find_project(project_id)
    except TrackerError as e:
        return _failure(request, e)
    return Response([membership_payload(m) for m in membership.members_of(project)])


@api_view(["GET"])
def my_projects(request):
    """Return the caller's projects, each with the caller's role in it."""
    try:
        user = identity.resolve_user(request)
    except TrackerError as e:
        return _failure(request, e)
    return Response([my_project_payload(m) for m in membership.memberships_for(user)])


# ---------------------------------------------------------------------------
# Bugs
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
def project_bugs(request, project_id):
    """GET lists a project's bugs newest first; POST reports a new one."""
    try:
        project = membership.find_project(project_id)
        if request.method == "GET":
            return Response([bug_payload(b) for b in lifecycle.bugs_for_project(project)])

        user = identity.resolve_user(request)
        data = _body(request)
        bug = lifecycle.report(
            user,
            project,
            description=data.get("description"),
            severity=data.get("severity"),
            priority=data.get("priority"),
            commit_link=data.get("commit_link"),
        )
    except TrackerError as e:
        return _failure(request, e)
    return Response(bug_payload(bug), status=201)


@api_view(["PUT"])
def bug_update(request, bug_id):
    """Overwrite arbitrary bug fields (Elevated only)."""
    try:
        user = identity.resolve_user(request)
        bug = lifecycle.find_bug(bug_id)
        bug = lifecycle.update(user, bug, _body(request))
    except TrackerError as e:
        return _failure(request, e)
    return Response(bug_payload(bug))


@api_view(["PUT"])
def bug_assign(request, bug_id):
    try:
        user = identity.resolve_user(request)
        bug = lifecycle.assign(user, lifecycle.find_bug(bug_id))
    except TrackerError as e:
        return _failure(request, e)
    return Response(bug_payload(bug))


@api_view(["PUT"])
def bug_unassign(request, bug_id):
    try:
        user = identity.resolve_user(request)
        bug = lifecycle.unassign(user, lifecycle.find_bug(bug_id))
    except TrackerError as e:
        return _failure(request, e)
    return Response(bug_payload(bug))


@api_view(["PUT"])
def bug_resolve(request, bug_id):
    try:
        user = identity.resolve_user(request)
        bug = lifecycle.resolve(
            user,
            lifecycle.find_bug(bug_id),
            resolved_commit_link=_body(request).get("resolved_commit_link"),
        )
    except TrackerError as e:
        return _failure(request, e)
    return Response(bug_payload(bug))
