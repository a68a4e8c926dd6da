"""Tests for the approval state machine."""

import asyncio

import httpx
import pytest

from profiledesigner.core.approval import ApprovalStateMachine, SoftResult, Submission
from profiledesigner.core.approval.errors import (
    ApprovalUpdateError,
    CloudLibraryError,
    TransitionError,
)
from profiledesigner.core.approval.models import ActingUser, ApprovalDecision, StatusUpdateOutcome
from profiledesigner.core.approval.states import Actor, SubmissionState
from profiledesigner.db.models import Profile
from profiledesigner.services import CloudLibraryClient

from tests.factories import ADMIN_ROLE, create_profile, create_user, make_submission

ADMIN = ActingUser(id=900, email="admin@cesmii.org", display_name="Admin", roles=frozenset({ADMIN_ROLE}))


@pytest.fixture
def machine(cloudlib, registry, notifier):
    return ApprovalStateMachine(cloudlib, registry, notifier, admin_role=ADMIN_ROLE)


@pytest.fixture
def author(db_session):
    return create_user(db_session, email="author@example.com", first_name="Ada", last_name="Lovelace")


@pytest.fixture
def queued_profile(db_session, cloudlib, author):
    cloudlib.add(make_submission(id="1001", title="Boilers"))
    profile = create_profile(db_session, author=author, title="Boilers", cloud_library_id="1001")
    db_session.commit()
    return profile


def as_author(user) -> ActingUser:
    return ActingUser(id=user.id, email=user.email, display_name=user.display_name)


def decide(machine, submission_id, state, description=None, user=ADMIN):
    decision = ApprovalDecision(submission_id=submission_id, target_state=state, description=description)
    return asyncio.run(machine.apply_decision(decision, user))


class TestActor:

    def test_admin_role_maps_to_administrator(self, machine):
        assert machine.actor_for(ADMIN) == Actor.ADMINISTRATOR

    def test_other_users_are_authors(self, machine):
        assert machine.actor_for(ActingUser(id=1, roles=frozenset({"viewer"}))) == Actor.AUTHOR


class TestApplyDecision:

    def test_empty_submission_id(self, machine, cloudlib):
        result = decide(machine, "", SubmissionState.APPROVED)
        assert result == SoftResult.failed("Profile not in cloud library.")
        assert cloudlib.update_calls == []

    def test_missing_submission_id(self, machine, cloudlib):
        result = decide(machine, None, SubmissionState.REJECTED)
        assert result.is_success is False
        assert result.message == "Profile not in cloud library."
        assert cloudlib.update_calls == []

    def test_approve_updates_remote_mirror_and_notifies(self, machine, cloudlib, notifier, queued_profile, db_session):
        result = decide(machine, "1001", SubmissionState.APPROVED, "Looks good")

        assert isinstance(result, Submission)
        assert result.state == SubmissionState.APPROVED
        assert cloudlib.update_calls == [("1001", SubmissionState.APPROVED, "Looks good")]

        profile = db_session.get(Profile, queued_profile.id)
        assert profile.cloud_library_id == "1001"
        assert profile.cloud_lib_pending_approval is False

        assert len(notifier.sent) == 1
        sent = notifier.sent[0]
        assert sent["event"] == "approved"
        assert sent["change_summary"] == "Approved"
        assert sent["recipient"].email == "author@example.com"
        assert sent["submission"].approval_description == "Looks good"

    def test_reject_notifies_author(self, machine, notifier, queued_profile, db_session):
        decide(machine, "1001", SubmissionState.REJECTED, "Missing documentation")

        profile = db_session.get(Profile, queued_profile.id)
        assert profile.cloud_lib_pending_approval is False
        assert notifier.sent[0]["event"] == "rejected"
        assert notifier.sent[0]["change_summary"] == "Rejected"

    def test_keep_pending(self, machine, notifier, queued_profile, db_session):
        result = decide(machine, "1001", SubmissionState.PENDING)

        assert result.state == SubmissionState.PENDING
        profile = db_session.get(Profile, queued_profile.id)
        assert profile.cloud_lib_pending_approval is True
        assert notifier.sent[0]["event"] == "status_changed"
        assert notifier.sent[0]["change_summary"] == "Remain in Submission Queue as Pending Submission"

    def test_admin_cancel_unlinks_profile(self, machine, notifier, queued_profile, db_session):
        result = decide(machine, "1001", SubmissionState.CANCELLED)

        assert result.state == SubmissionState.CANCELLED
        profile = db_session.get(Profile, queued_profile.id)
        assert profile.cloud_library_id is None
        assert profile.cloud_lib_pending_approval is None
        assert notifier.sent[0]["change_summary"] == (
            "Cancel Profile Submission and Remove from Submission Queue"
        )
        assert notifier.sent[0]["submission"].cloud_library_id == "1001"

    def test_admin_cancel_without_remote_result_raises(self, machine, cloudlib, notifier, queued_profile, db_session):
        cloudlib.submissions.clear()

        with pytest.raises(ApprovalUpdateError, match="Approval update failed."):
            decide(machine, "1001", SubmissionState.CANCELLED)

        profile = db_session.get(Profile, queued_profile.id)
        assert profile.cloud_library_id == "1001"
        assert profile.cloud_lib_pending_approval is True
        assert notifier.sent == []

    def test_null_node_from_cloud_library_leaves_mirror_alone(self, settings, registry, notifier, queued_profile, db_session):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"approveNodeSet": None}})

        async def run():
            client = CloudLibraryClient(settings, transport=httpx.MockTransport(handler))
            machine = ApprovalStateMachine(client, registry, notifier, admin_role=ADMIN_ROLE)
            try:
                return await machine.apply_decision(
                    ApprovalDecision("1001", SubmissionState.CANCELLED), ADMIN
                )
            finally:
                await client.aclose()

        with pytest.raises(ApprovalUpdateError):
            asyncio.run(run())

        assert db_session.get(Profile, queued_profile.id).cloud_library_id == "1001"
        assert notifier.sent == []

    def test_conflicting_remote_status_leaves_mirror_alone(self, machine, cloudlib, notifier, queued_profile, db_session):
        cloudlib.update_outcome = StatusUpdateOutcome.failed(
            "Cloud Library reports status PENDING",
            make_submission(id="1001"),
        )

        result = decide(machine, "1001", SubmissionState.APPROVED)

        assert result == SoftResult.failed("Status update failed.")
        profile = db_session.get(Profile, queued_profile.id)
        assert profile.cloud_lib_pending_approval is True
        assert notifier.sent == []

    def test_no_result_raises(self, machine, cloudlib):
        with pytest.raises(ApprovalUpdateError, match="Approval update failed."):
            decide(machine, "missing", SubmissionState.APPROVED)
        assert len(cloudlib.update_calls) == 1

    def test_cloud_library_error_message_is_returned(self, machine, cloudlib, notifier):
        cloudlib.update_error = CloudLibraryError("NodeSet not found")

        result = decide(machine, "1001", SubmissionState.APPROVED)

        assert result == SoftResult.failed("NodeSet not found")
        assert notifier.sent == []

    def test_transport_failure(self, machine, cloudlib):
        cloudlib.update_error = httpx.ReadTimeout("timed out")

        result = decide(machine, "1001", SubmissionState.REJECTED)

        assert result == SoftResult.failed("Cloud library unavailable.")

    def test_author_cannot_approve(self, machine, cloudlib, author):
        with pytest.raises(TransitionError) as exc_info:
            decide(machine, "1001", SubmissionState.APPROVED, user=as_author(author))
        assert exc_info.value.to_state == SubmissionState.APPROVED
        assert cloudlib.update_calls == []

    def test_decision_without_local_profile(self, machine, cloudlib, notifier):
        cloudlib.add(make_submission(id="2002"))

        result = decide(machine, "2002", SubmissionState.APPROVED)

        assert result.state == SubmissionState.APPROVED
        assert notifier.sent == []

    def test_notification_failure_does_not_fail_decision(self, machine, notifier, queued_profile):
        notifier.error = RuntimeError("smtp down")

        result = decide(machine, "1001", SubmissionState.APPROVED)

        assert result.state == SubmissionState.APPROVED


class TestCancelByAuthor:

    def cancel(self, machine, profile_id, user):
        return asyncio.run(machine.cancel_by_author(profile_id, user))

    def test_unknown_profile(self, machine, cloudlib):
        result = self.cancel(machine, 424242, ADMIN)
        assert result == SoftResult.failed("Profile not found.")
        assert cloudlib.update_calls == []

    def test_other_users_profile_is_not_found(self, machine, cloudlib, db_session, queued_profile):
        stranger = create_user(db_session)
        db_session.commit()

        result = self.cancel(machine, queued_profile.id, as_author(stranger))

        assert result == SoftResult.failed("Profile not found.")
        assert cloudlib.update_calls == []

    def test_author_cancels_own_submission(self, machine, cloudlib, notifier, db_session, queued_profile, author):
        result = self.cancel(machine, queued_profile.id, as_author(author))

        assert result == SoftResult.ok("Cancelled publish request.")
        assert cloudlib.update_calls == [
            ("1001", SubmissionState.CANCELLED, f"Canceled by user {author.id}")
        ]
        profile = db_session.get(Profile, queued_profile.id)
        assert profile.cloud_library_id is None
        assert profile.cloud_lib_pending_approval is None
        assert notifier.sent[0]["event"] == "cancelled"
        assert notifier.sent[0]["recipient"].email == "author@example.com"

    def test_admin_may_cancel_any_profile(self, machine, queued_profile):
        result = self.cancel(machine, queued_profile.id, ADMIN)
        assert result.is_success is True

    def test_cancel_is_idempotent(self, machine, cloudlib, db_session, queued_profile, author):
        cloudlib.add(make_submission(id="1001", state=SubmissionState.CANCELLED))
        user = as_author(author)

        first = self.cancel(machine, queued_profile.id, user)
        second = self.cancel(machine, queued_profile.id, user)

        assert first == SoftResult.ok("Cancelled publish request.")
        assert second == SoftResult.ok("Cancelled publish request.")
        assert len(cloudlib.update_calls) == 1

    def test_submission_gone_from_queue_counts_as_cancelled(self, machine, cloudlib, notifier, db_session, queued_profile, author):
        cloudlib.submissions.clear()

        result = self.cancel(machine, queued_profile.id, as_author(author))

        assert result == SoftResult.ok("Cancelled publish request.")
        assert len(cloudlib.update_calls) == 1
        assert db_session.get(Profile, queued_profile.id).cloud_library_id is None
        assert notifier.sent[0]["event"] == "cancelled"

    def test_remote_still_pending(self, machine, cloudlib, notifier, db_session, queued_profile, author):
        cloudlib.update_outcome = StatusUpdateOutcome.failed(
            "Cloud Library reports status PENDING",
            make_submission(id="1001"),
        )

        result = self.cancel(machine, queued_profile.id, as_author(author))

        assert result == SoftResult.failed("Status update failed.")
        profile = db_session.get(Profile, queued_profile.id)
        assert profile.cloud_library_id == "1001"
        assert profile.cloud_lib_pending_approval is True
        assert notifier.sent == []

    def test_cloud_library_error(self, machine, cloudlib, db_session, queued_profile, author):
        cloudlib.update_error = CloudLibraryError("Upload in progress")

        result = self.cancel(machine, queued_profile.id, as_author(author))

        assert result == SoftResult.failed("Upload in progress")
        assert db_session.get(Profile, queued_profile.id).cloud_library_id == "1001"

    def test_unexpected_error(self, machine, cloudlib, db_session, queued_profile, author):
        cloudlib.update_error = httpx.ConnectError("connection refused")

        result = self.cancel(machine, queued_profile.id, as_author(author))

        assert result == SoftResult.failed("Error cancelling publish request.")
        assert db_session.get(Profile, queued_profile.id).cloud_library_id == "1001"
