"""Cloud Library submission states and transitions.

State Machine Diagram:

    ┌──────────┐
    │ PENDING  │ ← Submitted to the Cloud Library
    └────┬─────┘
         │
         ├──────────────┬──────────────┬──────────────┐
         │              │              │              │
    ┌────▼─────┐   ┌────▼─────┐   ┌────▼──────┐  ┌────▼─────┐
    │ APPROVED │   │ REJECTED │   │ CANCELLED │  │ PENDING  │ (remain queued)
    └──────────┘   └──────────┘   └───────────┘  └──────────┘

Administrators may take any of the four decisions. Authors may only
cancel their own submission.
"""

from enum import Enum, IntEnum
from typing import Dict, FrozenSet, NamedTuple, Optional, Set


class SubmissionState(IntEnum):
    """States of a profile submission in the Cloud Library.

    The integer values define the listing sort order.
    """

    PENDING = 1
    APPROVED = 2
    REJECTED = 3
    CANCELLED = 4

    @property
    def status_string(self) -> str:
        """Status value understood by the Cloud Library API."""
        return _STATUS_STRINGS[self]

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def from_status_string(cls, status: Optional[str]) -> "SubmissionState":
        """Map a remote approval status to a state.

        Items in the approval queue without a status are pending.
        """
        if not status:
            return cls.PENDING
        try:
            return _STATES_BY_STATUS[status.upper()]
        except KeyError:
            raise ValueError(f"Unknown approval status: {status}") from None

    @classmethod
    def parse(cls, value) -> "SubmissionState":
        """Accept an ordinal, a state name or a remote status string."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        key = text.upper()
        if key.startswith("CLOUDLIB"):
            key = key[len("CLOUDLIB"):]
        if key in cls.__members__:
            return cls[key]
        return cls.from_status_string(key)


_STATUS_STRINGS: Dict[SubmissionState, str] = {
    SubmissionState.PENDING: "PENDING",
    SubmissionState.APPROVED: "APPROVED",
    SubmissionState.REJECTED: "REJECTED",
    SubmissionState.CANCELLED: "CANCELED",
}

_STATES_BY_STATUS: Dict[str, SubmissionState] = {
    status: state for state, status in _STATUS_STRINGS.items()
}


class Actor(str, Enum):
    """Who may request a transition."""

    ADMINISTRATOR = "administrator"
    AUTHOR = "author"


class TransitionRule(NamedTuple):
    """Defines a valid state transition."""
    from_state: SubmissionState
    to_state: SubmissionState
    actors: FrozenSet[Actor]


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(SubmissionState.PENDING, SubmissionState.APPROVED,
                   frozenset({Actor.ADMINISTRATOR})),
    TransitionRule(SubmissionState.PENDING, SubmissionState.REJECTED,
                   frozenset({Actor.ADMINISTRATOR})),
    TransitionRule(SubmissionState.PENDING, SubmissionState.CANCELLED,
                   frozenset({Actor.ADMINISTRATOR, Actor.AUTHOR})),
    TransitionRule(SubmissionState.PENDING, SubmissionState.PENDING,
                   frozenset({Actor.ADMINISTRATOR})),
]

TRANSITION_TARGETS: Dict[tuple[SubmissionState, SubmissionState], TransitionRule] = {
    (rule.from_state, rule.to_state): rule for rule in TRANSITION_RULES
}

TERMINAL_STATES: Set[SubmissionState] = {
    SubmissionState.APPROVED,
    SubmissionState.REJECTED,
    SubmissionState.CANCELLED,
}

# Human readable summaries used in notifications
CHANGE_SUMMARIES: Dict[SubmissionState, str] = {
    SubmissionState.CANCELLED: "Cancel Profile Submission and Remove from Submission Queue",
    SubmissionState.PENDING: "Remain in Submission Queue as Pending Submission",
}


def can_transition(
    from_state: SubmissionState,
    to_state: SubmissionState,
    actor: Actor,
) -> bool:
    """Check if the actor may move a submission between two states."""
    rule = TRANSITION_TARGETS.get((from_state, to_state))
    return rule is not None and actor in rule.actors


def describe_change(state: SubmissionState) -> str:
    """Summary of a decision as shown to the submission's author."""
    return CHANGE_SUMMARIES.get(state, state.label)
