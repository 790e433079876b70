import pytest

from tracker import lifecycle, membership
from tracker.errors import Conflict, Forbidden, InvalidInput, NotFound
from tracker.models import Bug, Priority, Severity, Status


# ---------------------------------------------------------------------------
# report
# ---------------------------------------------------------------------------

def test_member_reports_open_unassigned_bug(tester, project):
    bug = lifecycle.report(tester, project, "crash on save", commit_link="f00ba4")

    assert bug.status == Status.OPEN
    assert bug.reporter_id == tester.pk
    assert bug.assigned_to_id is None
    assert bug.severity == Severity.MEDIUM
    assert bug.priority == Priority.NORMAL
    assert bug.commit_link == "f00ba4"
    assert bug.resolved_commit_link is None


def test_report_keeps_given_severity_and_priority(alice, project):
    bug = lifecycle.report(alice, project, "checkout 500", severity="High", priority="Urgent")

    assert (bug.severity, bug.priority) == ("High", "Urgent")


@pytest.mark.parametrize("description", ["", "   ", None, 123, ["crash"]])
def test_report_requires_description(tester, project, description):
    with pytest.raises(InvalidInput):
        lifecycle.report(tester, project, description)
    assert not Bug.objects.exists()


def test_report_by_non_member_is_forbidden(outsider, project):
    with pytest.raises(Forbidden):
        lifecycle.report(outsider, project, "valid text")


def test_report_rejects_unknown_severity(tester, project):
    with pytest.raises(InvalidInput):
        lifecycle.report(tester, project, "typo in footer", severity="Critical")


def test_report_rejects_non_text_commit_link(tester, project):
    with pytest.raises(InvalidInput):
        lifecycle.report(tester, project, "typo in footer", commit_link=42)


# ---------------------------------------------------------------------------
# assign
# ---------------------------------------------------------------------------

def test_elevated_member_assigns_open_bug(alice, bug):
    bug = lifecycle.assign(alice, bug)

    assert bug.assigned_to_id == alice.pk
    assert bug.status == Status.IN_PROGRESS


def test_assign_twice_is_idempotent(alice, bug):
    first = lifecycle.assign(alice, bug)
    second = lifecycle.assign(alice, first)

    assert second.assigned_to_id == first.assigned_to_id == alice.pk
    assert second.status == first.status == Status.IN_PROGRESS
    assert second.updated_at == first.updated_at


def test_assignee_reassigns_resolved_bug_back_to_in_progress(alice, bug):
    lifecycle.resolve(alice, lifecycle.assign(alice, bug))

    bug = lifecycle.assign(alice, bug)
    assert bug.status == Status.IN_PROGRESS
    assert bug.assigned_to_id == alice.pk


def test_reporter_cannot_assign(tester, bug):
    with pytest.raises(Forbidden):
        lifecycle.assign(tester, bug)

    bug.refresh_from_db()
    assert bug.assigned_to_id is None
    assert bug.status == Status.OPEN


def test_assign_by_other_elevated_member_conflicts(alice, second_lead, bug):
    lifecycle.assign(alice, bug)

    with pytest.raises(Conflict):
        lifecycle.assign(second_lead, bug)

    bug.refresh_from_db()
    assert bug.assigned_to_id == alice.pk


def test_stale_snapshot_loses_the_assign_race(alice, second_lead, bug):
    # Both requests loaded the bug while it was unassigned
    seen_by_alice = lifecycle.find_bug(bug.pk)
    seen_by_carol = lifecycle.find_bug(bug.pk)

    lifecycle.assign(second_lead, seen_by_carol)

    with pytest.raises(Conflict):
        lifecycle.assign(alice, seen_by_alice)
    assert lifecycle.find_bug(bug.pk).assigned_to_id == second_lead.pk


def test_assign_missing_bug_is_not_found(alice, bug):
    stale = lifecycle.find_bug(bug.pk)
    Bug.objects.filter(pk=bug.pk).delete()

    with pytest.raises(NotFound):
        lifecycle.assign(alice, stale)


# ---------------------------------------------------------------------------
# unassign
# ---------------------------------------------------------------------------

def test_assignee_unassigns_back_to_open(alice, bug):
    lifecycle.assign(alice, bug)

    bug = lifecycle.unassign(alice, bug)

    assert bug.assigned_to_id is None
    assert bug.status == Status.OPEN


def test_unassign_by_someone_else_is_forbidden(alice, second_lead, tester, bug):
    lifecycle.assign(alice, bug)

    for other in (second_lead, tester):
        with pytest.raises(Forbidden):
            lifecycle.unassign(other, bug)

    bug.refresh_from_db()
    assert bug.assigned_to_id == alice.pk
    assert bug.status == Status.IN_PROGRESS


def test_unassign_unassigned_bug_is_forbidden(alice, bug):
    with pytest.raises(Forbidden):
        lifecycle.unassign(alice, bug)


def test_assignee_can_unassign_resolved_bug(alice, bug):
    # No status precondition on unassign; kept as-is and flagged here
    lifecycle.assign(alice, bug)
    lifecycle.resolve(alice, bug, "abc123")

    bug = lifecycle.unassign(alice, bug)

    assert bug.status == Status.OPEN
    assert bug.assigned_to_id is None


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------

def test_assignee_resolves_with_commit(alice, bug):
    lifecycle.assign(alice, bug)

    bug = lifecycle.resolve(alice, bug, "abc123")

    assert bug.status == Status.RESOLVED
    assert bug.resolved_commit_link == "abc123"
    assert bug.assigned_to_id == alice.pk


def test_resolve_without_commit_stores_null(alice, bug):
    lifecycle.assign(alice, bug)
    lifecycle.resolve(alice, bug, "abc123")

    bug = lifecycle.resolve(alice, bug)

    assert bug.resolved_commit_link is None


def test_resolve_by_non_assignee_is_forbidden(alice, second_lead, bug):
    lifecycle.assign(alice, bug)

    with pytest.raises(Forbidden):
        lifecycle.resolve(second_lead, bug, "abc123")


def test_resolve_without_assignee_is_forbidden(alice, bug):
    with pytest.raises(Forbidden):
        lifecycle.resolve(alice, bug, "abc123")

    bug.refresh_from_db()
    assert bug.status == Status.OPEN


def test_resolve_depends_on_assignee_not_status(alice, bug):
    # Assigned through the override path while still OPEN
    bug = lifecycle.update(alice, bug, {"assigned_to": alice.pk, "status": "OPEN"})

    bug = lifecycle.resolve(alice, bug, "def456")

    assert bug.status == Status.RESOLVED


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------

def test_update_overwrites_fields_and_bypasses_transitions(alice, bug):
    bug = lifecycle.update(alice, bug, {
        "status": "RESOLVED",
        "severity": "Low",
        "description": "crash on save (large files only)",
    })

    assert bug.status == Status.RESOLVED
    assert bug.severity == Severity.LOW
    assert bug.description == "crash on save (large files only)"
    assert bug.assigned_to_id is None


def test_update_can_hand_bug_to_another_user(alice, tester, bug):
    lifecycle.assign(alice, bug)

    bug = lifecycle.update(alice, bug, {"assigned_to": tester.pk})
    assert bug.assigned_to_id == tester.pk

    bug = lifecycle.update(alice, bug, {"assigned_to": None})
    assert bug.assigned_to_id is None


def test_update_by_reporter_is_forbidden(tester, bug):
    with pytest.raises(Forbidden):
        lifecycle.update(tester, bug, {"priority": "Urgent"})


@pytest.mark.parametrize(
    "fields",
    [
        {"status": "CLOSED"},
        {"priority": "Whenever"},
        {"description": ""},
        {"description": 42},
        {"severity": 1},
        {"commit_link": ["abc"]},
        {"assigned_to": True},
        {"assigned_to": "bob"},
        {"assigned_to": 1.5},
        {"reporter": 1},
        {"project": 2},
    ],
)
def test_update_rejects_values_outside_the_model(alice, bug, fields):
    with pytest.raises(InvalidInput):
        lifecycle.update(alice, bug, fields)


def test_update_with_unknown_assignee_is_not_found(alice, bug):
    with pytest.raises(NotFound):
        lifecycle.update(alice, bug, {"assigned_to": 999999})

    assert lifecycle.find_bug(bug.pk).assigned_to_id is None


def test_update_accepts_assignee_id_as_text(alice, tester, bug):
    bug = lifecycle.update(alice, bug, {"assigned_to": str(tester.pk)})

    assert bug.assigned_to_id == tester.pk


def test_bugs_for_project_newest_first(tester, project):
    first = lifecycle.report(tester, project, "first")
    second = lifecycle.report(tester, project, "second")

    assert [b.pk for b in lifecycle.bugs_for_project(project)] == [second.pk, first.pk]


# ---------------------------------------------------------------------------
# end to end
# ---------------------------------------------------------------------------

def test_project_lifecycle_scenario(make_user):
    a = make_user("A")
    b = make_user("B")

    p = membership.create_project(a, "P", "https://git.example.com/p.git")
    membership.join(b, p)

    bug = lifecycle.report(b, p, "crash on save")
    assert (bug.status, bug.reporter_id) == (Status.OPEN, b.pk)

    bug = lifecycle.assign(a, bug)
    assert (bug.status, bug.assigned_to_id) == (Status.IN_PROGRESS, a.pk)

    bug = lifecycle.resolve(a, bug, "abc123")
    assert (bug.status, bug.resolved_commit_link) == (Status.RESOLVED, "abc123")

    with pytest.raises(Forbidden):
        lifecycle.assign(b, bug)

    # Unassign after resolution is allowed: the only guard is the assignee match
    bug = lifecycle.unassign(a, bug)
    assert bug.status == Status.OPEN
    assert bug.status in Status.values
