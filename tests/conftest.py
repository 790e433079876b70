import itertools

import pytest
from rest_framework.test import APIClient

from tracker import lifecycle, membership
from tracker.models import Membership, Role, User


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make(name: str | None = None) -> User:
        n = next(counter)
        return User.objects.create_user(
            email=f"user{n}@example.com",
            name=name or f"User {n}",
            password="s3cret-pass",
        )

    return _make


@pytest.fixture
def alice(make_user):
    """Creates the project, so she is its Elevated member."""
    return make_user("Alice")


@pytest.fixture
def bob(make_user):
    return make_user("Bob")


@pytest.fixture
def carol(make_user):
    return make_user("Carol")


@pytest.fixture
def outsider(make_user):
    return make_user("Olivia")


@pytest.fixture
def project(alice):
    return membership.create_project(alice, "Storefront", "https://git.example.com/storefront.git")


@pytest.fixture
def tester(bob, project):
    """Bob, joined to the project as a Reporter."""
    membership.join(bob, project)
    return bob


@pytest.fixture
def second_lead(carol, project):
    """Carol, seeded directly as a second Elevated member."""
    Membership.objects.create(user=carol, project=project, role=Role.ELEVATED)
    return carol


@pytest.fixture
def bug(tester, project):
    return lifecycle.report(tester, project, "crash on save")


@pytest.fixture
def api_client():
    return APIClient()
