"""Value types shared by the approval query and the state machine."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .states import SubmissionState


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Submission(CamelModel):
    """A profile as published to (or queued for) the Cloud Library."""

    id: str
    title: Optional[str] = None
    namespace: Optional[str] = None
    description: Optional[str] = None
    contributor_name: Optional[str] = None
    license: Optional[str] = None
    author_name: Optional[str] = None
    version: Optional[str] = None
    publish_date: Optional[datetime] = None
    state: SubmissionState = SubmissionState.PENDING
    approval_status: Optional[str] = None
    approval_description: Optional[str] = None

    @field_validator("publish_date")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class PageInfo(CamelModel):
    """Cursor metadata reported by the Cloud Library for one page."""

    start_cursor: Optional[str] = None
    end_cursor: Optional[str] = None
    has_next_page: bool = False
    has_previous_page: bool = False


class RemotePage(CamelModel):
    """One page of the remote approval queue."""

    items: List[Submission] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)
    total_count: int = 0


class SoftResult(CamelModel):
    """User-visible outcome of a workflow operation.

    Failures reported this way are business outcomes, not protocol errors.
    """

    is_success: bool
    message: str

    @classmethod
    def ok(cls, message: str) -> "SoftResult":
        return cls(is_success=True, message=message)

    @classmethod
    def failed(cls, message: str) -> "SoftResult":
        return cls(is_success=False, message=message)


class StatusUpdateKind(str, Enum):
    SUCCESS = "success"
    ALREADY_IN_STATE = "already_in_state"
    NO_RESULT = "no_result"
    FAILED = "failed"


@dataclass(frozen=True)
class StatusUpdateOutcome:
    """Result of asking the Cloud Library to change a submission's status."""

    kind: StatusUpdateKind
    submission: Optional[Submission] = None
    reason: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.kind in (StatusUpdateKind.SUCCESS, StatusUpdateKind.ALREADY_IN_STATE)

    @classmethod
    def success(cls, submission: Optional[Submission] = None) -> "StatusUpdateOutcome":
        return cls(StatusUpdateKind.SUCCESS, submission)

    @classmethod
    def already_in_state(cls, submission: Optional[Submission] = None) -> "StatusUpdateOutcome":
        return cls(StatusUpdateKind.ALREADY_IN_STATE, submission)

    @classmethod
    def no_result(cls, reason: str) -> "StatusUpdateOutcome":
        return cls(StatusUpdateKind.NO_RESULT, None, reason)

    @classmethod
    def failed(cls, reason: str, submission: Optional[Submission] = None) -> "StatusUpdateOutcome":
        return cls(StatusUpdateKind.FAILED, submission, reason)


@dataclass(frozen=True)
class ActingUser:
    """The authenticated caller of a request."""

    id: int
    email: Optional[str] = None
    display_name: Optional[str] = None
    roles: frozenset = frozenset()

    @property
    def attribution(self) -> str:
        """Identity tag the Cloud Library records for Profile Designer users."""
        return f"PD{self.id}"

    def has_role(self, role: str) -> bool:
        return role in self.roles


@dataclass(frozen=True)
class ApprovalDecision:
    """An administrator's decision on a queued submission."""

    submission_id: Optional[str]
    target_state: SubmissionState
    description: Optional[str] = None


@dataclass(frozen=True)
class SubmittedProfile:
    """Snapshot of a local profile and the decision taken on its submission."""

    profile_id: int
    namespace: str
    title: Optional[str] = None
    version: Optional[str] = None
    cloud_library_id: Optional[str] = None
    state: Optional[SubmissionState] = None
    approval_description: Optional[str] = None

    @classmethod
    def from_profile(
        cls,
        profile,
        state: Optional[SubmissionState] = None,
        approval_description: Optional[str] = None,
    ) -> "SubmittedProfile":
        return cls(
            profile_id=profile.id,
            namespace=profile.namespace,
            title=profile.title,
            version=profile.version,
            cloud_library_id=profile.cloud_library_id,
            state=state,
            approval_description=approval_description,
        )
