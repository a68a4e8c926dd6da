"""Pending approvals listing.

Fetches a single page of the Cloud Library approval queue, then filters,
skips and sorts it locally. Filtering and skipping only ever see the page
that was fetched, so filtered counts and cursors are accurate for that
page alone.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol

import httpx
from pydantic import Field, ValidationError, field_validator

from .errors import CloudLibraryError, DependencyUnavailableError
from .models import ActingUser, CamelModel, PageInfo, RemotePage, Submission

logger = logging.getLogger(__name__)

DEFAULT_TAKE = 25
MAX_TAKE = 100

_SCHEME_PREFIX = re.compile(r"^https?://")


class PendingApprovalsSource(Protocol):
    async def list_pending_approvals(
        self,
        take: int,
        cursor: Optional[str],
        page_backwards: bool,
        attribution: str,
    ) -> Optional[RemotePage]:
        ...


class PendingApprovalsFilter(CamelModel):
    """Listing parameters sent by the admin dashboard."""

    query: Optional[str] = None
    skip: int = 0
    take: int = DEFAULT_TAKE
    cursor: Optional[str] = None
    page_backwards: bool = False

    @field_validator("skip", "take", mode="before")
    @classmethod
    def _null_means_default(cls, value, info):
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("skip")
    @classmethod
    def _non_negative_skip(cls, value: int) -> int:
        return max(value, 0)

    @field_validator("take")
    @classmethod
    def _clamp_take(cls, value: int) -> int:
        return clamp_take(value)

    @classmethod
    def from_payload(cls, payload: Any) -> "PendingApprovalsFilter":
        """Build a filter from a request body, falling back to defaults."""
        if payload is None:
            return cls()
        if isinstance(payload, cls):
            return payload
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Malformed pending approvals filter, using defaults: {e.error_count()} error(s)")
            return cls()


class PendingApprovalsResult(CamelModel):
    count: int
    data: List[Submission] = Field(default_factory=list)
    start_cursor: Optional[str] = None
    end_cursor: Optional[str] = None
    has_next_page: bool = False
    has_previous_page: bool = False


def clamp_take(take: Optional[int]) -> int:
    if take is None or take <= 0:
        return DEFAULT_TAKE
    return min(take, MAX_TAKE)


def strip_scheme(namespace: Optional[str]) -> str:
    """Namespace URI without its leading http(s) scheme, trimmed."""
    return _SCHEME_PREFIX.sub("", namespace or "", count=1).strip()


def effective_title(submission: Submission) -> str:
    if submission.title:
        return submission.title.strip()
    return strip_scheme(submission.namespace)


def sort_key(submission: Submission):
    publish_date = submission.publish_date
    return (
        int(submission.state),
        effective_title(submission),
        strip_scheme(submission.namespace),
        publish_date is not None,
        publish_date or datetime.min.replace(tzinfo=timezone.utc),
    )


def matches(submission: Submission, query: str) -> bool:
    """Case-insensitive substring match across the searchable fields."""
    needle = query.lower()
    fields = (
        submission.title,
        submission.namespace,
        submission.description,
        submission.contributor_name,
        submission.license,
        submission.author_name,
    )
    return any(value is not None and needle in value.lower() for value in fields)


class PaginatedApprovalQuery:
    """Lists Cloud Library submissions awaiting an administrator decision."""

    def __init__(self, source: PendingApprovalsSource):
        self.source = source

    async def get_pending_approvals(
        self,
        filters: Optional[PendingApprovalsFilter],
        acting_user: ActingUser,
    ) -> PendingApprovalsResult:
        """
        Fetch, filter and sort one page of pending submissions.

        Raises:
            DependencyUnavailableError: If the Cloud Library returns no page
                or cannot be reached
        """
        filters = filters or PendingApprovalsFilter()
        take = clamp_take(filters.take)

        try:
            page = await self.source.list_pending_approvals(
                take,
                filters.cursor,
                filters.page_backwards,
                acting_user.attribution,
            )
        except (httpx.HTTPError, CloudLibraryError) as e:
            logger.error(f"Error retrieving pending approvals: {e}")
            raise DependencyUnavailableError("Error retrieving pending approvals.") from e

        if page is None:
            raise DependencyUnavailableError("No records found.")

        items = list(page.items)
        if filters.query:
            items = [s for s in items if matches(s, filters.query)]
            if filters.skip > 0:
                items = items[filters.skip:]

        items.sort(key=sort_key)

        page_info = page.page_info or PageInfo()
        return PendingApprovalsResult(
            count=len(items) if filters.query else page.total_count,
            data=items,
            start_cursor=page_info.start_cursor,
            end_cursor=page_info.end_cursor,
            has_next_page=page_info.has_next_page,
            has_previous_page=page_info.has_previous_page,
        )
