"""Request bodies for the Cloud Library moderation endpoints."""

from typing import Optional

from pydantic import Field, field_validator

from profiledesigner.core.approval.models import CamelModel
from profiledesigner.core.approval.states import SubmissionState


class ApprovalRequestModel(CamelModel):
    """An administrator's decision on a queued submission."""
    id: Optional[str] = None
    approve_state: SubmissionState
    approval_description: Optional[str] = Field(None, max_length=4000)

    @field_validator("approve_state", mode="before")
    @classmethod
    def _parse_state(cls, value):
        # Accepts ordinals as well as names like "CloudLibApproved" or "CANCELED"
        if value is None:
            raise ValueError("approveState is required")
        return SubmissionState.parse(value)


class IdIntModel(CamelModel):
    id: int
