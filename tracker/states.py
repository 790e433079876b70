"""Bug status state machine using the transitions library.

Usage:
    from tracker.states import next_status

    next_status("OPEN", "assign")  # -> "IN_PROGRESS"

Only status movement lives here. Who may fire a trigger is decided by
``tracker.policy`` before the lifecycle engine asks for the next status.
"""

import logging

from transitions import Machine, MachineError

from tracker.errors import Conflict
from tracker.models import Status

logger = logging.getLogger("tracker.states")

STATES = [Status.OPEN.value, Status.IN_PROGRESS.value, Status.RESOLVED.value]

# Transitions defined as (trigger, source, dest)
TRANSITIONS = [
    # Taking a bug, or re-confirming one already held
    {"trigger": "assign", "source": "OPEN", "dest": "IN_PROGRESS"},
    {"trigger": "assign", "source": "IN_PROGRESS", "dest": "IN_PROGRESS"},
    # The assignee of a resolved bug can take it up again
    {"trigger": "assign", "source": "RESOLVED", "dest": "IN_PROGRESS"},

    # Unassign and resolve are guarded by assignee identity only, not by status
    {"trigger": "unassign", "source": "OPEN", "dest": "OPEN"},
    {"trigger": "unassign", "source": "IN_PROGRESS", "dest": "OPEN"},
    {"trigger": "unassign", "source": "RESOLVED", "dest": "OPEN"},
    {"trigger": "resolve", "source": "OPEN", "dest": "RESOLVED"},
    {"trigger": "resolve", "source": "IN_PROGRESS", "dest": "RESOLVED"},
    {"trigger": "resolve", "source": "RESOLVED", "dest": "RESOLVED"},
]

TRIGGERS = frozenset(t["trigger"] for t in TRANSITIONS)


class BugStatusMachine:
    """Throwaway FSM seeded with a bug's stored status."""

    def __init__(self, status: str):
        if status not in STATES:
            raise Conflict(f"Unknown bug status '{status}'")

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=status,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        logger.debug(
            "%s -> %s (%s)",
            event.transition.source,
            event.transition.dest,
            event.event.name,
        )

    def can(self, trigger: str) -> bool:
        return trigger in self.machine.get_triggers(self.state)


def next_status(current: str, trigger: str) -> str:
    """Return the status a bug moves to when ``trigger`` fires from ``current``.

    Raises:
        ValueError: If ``trigger`` is not a lifecycle trigger.
        Conflict: If ``current`` is not a known status or the trigger is not
            allowed from it.
    """
    if trigger not in TRIGGERS:
        raise ValueError(f"Unknown lifecycle trigger '{trigger}'")

    fsm = BugStatusMachine(current)
    try:
        fsm.trigger(trigger)
    except MachineError:
        raise Conflict(f"Cannot {trigger} a bug that is {current}")
    return fsm.state


def is_valid_status(value) -> bool:
    return value in STATES
