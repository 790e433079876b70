"""Identity store: registration, credential checks and acting-user resolution."""

from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import authenticate
from django.db import IntegrityError, transaction

from tracker.errors import InvalidInput, Unauthenticated
from tracker.models import User

logger = logging.getLogger("tracker.identity")


def register(name: str, email: str, password: str) -> User:
    """Create a user account.

    Raises:
        InvalidInput: If a field is missing or the email is already taken.
    """
    if not name or not email or not password:
        raise InvalidInput("name, email and password are required")
    if not all(isinstance(value, str) for value in (name, email, password)):
        raise InvalidInput("name, email and password must be strings")

    email = User.objects.normalize_email(email)
    if User.objects.filter(email__iexact=email).exists():
        raise InvalidInput("An account with this email already exists")

    try:
        with transaction.atomic():
            user = User.objects.create_user(email=email, name=name, password=password)
    except IntegrityError:
        raise InvalidInput("An account with this email already exists")

    logger.info("Registered user %s", user.pk)
    return user


def login(email: str, password: str) -> User:
    """Return the user whose credentials match, or raise ``Unauthenticated``."""
    user = None
    if isinstance(email, str) and isinstance(password, str) and email and password:
        user = authenticate(username=email, password=password)
    if user is None:
        logger.warning("Failed login for %s", email)
        raise Unauthenticated("Wrong email or password")
    return user


def resolve_user(request) -> User:
    """Resolve the acting user from the identity header of an HTTP request.

    The header name comes from ``TRACKER_USER_HEADER`` and carries the user id
    returned by ``login``.
    """
    raw = request.headers.get(settings.TRACKER_USER_HEADER, "").strip()
    if not raw:
        raise Unauthenticated("You must be logged in")

    try:
        return User.objects.get(pk=int(raw))
    except (User.DoesNotExist, ValueError):
        raise Unauthenticated("Unknown user")
