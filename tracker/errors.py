"""Typed failures raised by the tracker core."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for every refusal the core can return to a caller.

    ``status_code`` is the HTTP status the REST layer answers with.
    """

    status_code = 400
    default_detail = "Request could not be completed"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(TrackerError):
    """No resolvable acting user."""

    status_code = 401
    default_detail = "Authentication required"


class Forbidden(TrackerError):
    """Authenticated, but without the role or ownership the action needs."""

    status_code = 403
    default_detail = "Not allowed"


class NotFound(TrackerError):
    """A referenced project, bug, or user does not exist."""

    status_code = 404
    default_detail = "Not found"


class Conflict(TrackerError):
    """Valid actor, but the current state rejects the action."""

    status_code = 409
    default_detail = "Conflicting state"


class AlreadyMember(TrackerError):
    status_code = 409
    default_detail = "Already a member of this project"


class InvalidInput(TrackerError):
    status_code = 400
    default_detail = "Invalid input"
