"""Errors raised by the approval workflow."""

from .states import SubmissionState


class CloudLibraryError(Exception):
    """The Cloud Library rejected a request.

    Distinct from transport failures, which surface as ``httpx.HTTPError``.
    """


class DependencyUnavailableError(Exception):
    """Raised when the Cloud Library cannot produce a page of results."""


class ApprovalUpdateError(Exception):
    """Raised when the Cloud Library returns nothing for a status update."""


class TransitionError(Exception):
    """Raised when a state transition is not allowed."""

    def __init__(self, message: str, to_state: SubmissionState):
        super().__init__(message)
        self.to_state = to_state
