"""Pytest configuration and shared fixtures."""

from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from profiledesigner.api.main import create_app
from profiledesigner.core.approval.models import (
    PageInfo,
    RemotePage,
    StatusUpdateOutcome,
    Submission,
)
from profiledesigner.core.approval.states import SubmissionState
from profiledesigner.core.config import Settings
from profiledesigner.core.security import create_access_token
from profiledesigner.db import Base
from profiledesigner.db import models  # noqa: F401  registers tables
from profiledesigner.services import ProfileRegistry

from tests.factories import ADMIN_ROLE


class FakeCloudLibraryClient:
    """In-memory stand-in for the Cloud Library GraphQL client."""

    def __init__(self):
        self.submissions: Dict[str, Submission] = {}
        self.page: Optional[RemotePage] = None
        self.return_no_page = False
        self.list_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None
        self.update_outcome: Optional[StatusUpdateOutcome] = None
        self.list_calls: List[dict] = []
        self.update_calls: List[tuple] = []

    def add(self, *submissions: Submission) -> None:
        for submission in submissions:
            self.submissions[submission.id] = submission

    async def list_pending_approvals(self, take, cursor, page_backwards, attribution):
        self.list_calls.append({
            "take": take,
            "cursor": cursor,
            "page_backwards": page_backwards,
            "attribution": attribution,
        })
        if self.list_error is not None:
            raise self.list_error
        if self.return_no_page:
            return None
        if self.page is not None:
            return self.page

        items = list(self.submissions.values())
        return RemotePage(
            items=items[:take],
            page_info=PageInfo(
                start_cursor="0" if items else None,
                end_cursor=str(min(take, len(items)) - 1) if items else None,
                has_next_page=len(items) > take,
                has_previous_page=False,
            ),
            total_count=len(items),
        )

    async def update_approval_status(self, submission_id, state, description):
        self.update_calls.append((submission_id, state, description))
        if self.update_error is not None:
            raise self.update_error
        if self.update_outcome is not None:
            return self.update_outcome

        submission = self.submissions.get(submission_id)
        if submission is None:
            return StatusUpdateOutcome.no_result(f"No result updating {submission_id}")
        if submission.state == state == SubmissionState.CANCELLED:
            return StatusUpdateOutcome.already_in_state(submission)

        updated = submission.model_copy(update={
            "state": state,
            "approval_status": state.status_string,
            "approval_description": description,
        })
        self.submissions[submission_id] = updated
        return StatusUpdateOutcome.success(updated)


class RecordingNotifier:
    """Notification dispatcher that records instead of sending email."""

    def __init__(self):
        self.sent: List[dict] = []
        self.error: Optional[Exception] = None

    async def _record(self, event, submission, recipient, change_summary=None):
        if self.error is not None:
            raise self.error
        self.sent.append({
            "event": event,
            "submission": submission,
            "recipient": recipient,
            "change_summary": change_summary,
        })
        return True

    async def notify_approved(self, submission, change_summary, author):
        return await self._record("approved", submission, author, change_summary)

    async def notify_rejected(self, submission, change_summary, author):
        return await self._record("rejected", submission, author, change_summary)

    async def notify_status_changed(self, submission, change_summary, author):
        return await self._record("status_changed", submission, author, change_summary)

    async def notify_cancelled(self, submission, requester):
        return await self._record("cancelled", submission, requester)


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        secret_key="test-secret-key",
        admin_role=ADMIN_ROLE,
        app_base_url="https://profiledesigner.test",
        cloudlib_url="https://cloudlib.test",
        smtp_host=None,
        file_logging=False,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def registry(db_session):
    return ProfileRegistry(db_session)


@pytest.fixture
def cloudlib():
    return FakeCloudLibraryClient()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def app(settings, session_factory, cloudlib, notifier):
    return create_app(
        settings,
        session_factory=session_factory,
        cloudlib_client=cloudlib,
        notifier=notifier,
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_headers(settings):
    """Build bearer token headers for a user id and roles."""

    def _make(user_id: int, roles=(), email: Optional[str] = None, name: Optional[str] = None):
        token = create_access_token(
            user_id,
            settings,
            email=email or f"user{user_id}@example.com",
            name=name,
            roles=roles,
        )
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def admin_headers(make_headers):
    return make_headers(900, roles=[ADMIN_ROLE], email="admin@cesmii.org", name="CESMII Admin")
