"""Approval workflow module for Cloud Library publishing.

Implements the pending approvals listing and the submission state machine.
"""

from .states import SubmissionState, TRANSITION_RULES, TERMINAL_STATES
from .models import SoftResult, StatusUpdateOutcome, StatusUpdateKind, Submission
from .query import PaginatedApprovalQuery, PendingApprovalsFilter, PendingApprovalsResult
from .machine import ApprovalStateMachine

__all__ = [
    "SubmissionState",
    "TRANSITION_RULES",
    "TERMINAL_STATES",
    "SoftResult",
    "StatusUpdateOutcome",
    "StatusUpdateKind",
    "Submission",
    "PaginatedApprovalQuery",
    "PendingApprovalsFilter",
    "PendingApprovalsResult",
    "ApprovalStateMachine",
]
