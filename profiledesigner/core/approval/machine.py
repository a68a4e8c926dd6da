"""Approval state machine for Cloud Library submissions.

The Cloud Library is the source of truth for a submission's status. Each
decision first updates the remote status, then brings the local profile
in line and notifies the people involved. The two stores are not updated
atomically; a stale local profile is reconciled on the next decision.
"""

import logging
from typing import Optional, Protocol, Union

import httpx

from .errors import ApprovalUpdateError, CloudLibraryError, TransitionError
from .models import (
    ActingUser,
    ApprovalDecision,
    SoftResult,
    StatusUpdateKind,
    StatusUpdateOutcome,
    SubmittedProfile,
    Submission,
)
from .states import TERMINAL_STATES, Actor, SubmissionState, can_transition, describe_change

logger = logging.getLogger(__name__)


class StatusUpdater(Protocol):
    async def update_approval_status(
        self,
        submission_id: str,
        state: SubmissionState,
        description: Optional[str],
    ) -> StatusUpdateOutcome:
        ...


class ApprovalStateMachine:
    """
    Applies administrator decisions and author cancellations.

    Failures a user can act on are returned as SoftResult values. Only
    invalid transitions and updates the Cloud Library answers with nothing
    raise.
    """

    def __init__(self, client: StatusUpdater, registry, notifier, *, admin_role: str):
        """
        Initialize the state machine.

        Args:
            client: Cloud Library client performing status updates
            registry: Local profile registry
            notifier: Notification dispatcher
            admin_role: Role name granting administrator decisions
        """
        self.client = client
        self.registry = registry
        self.notifier = notifier
        self.admin_role = admin_role

    def actor_for(self, acting_user: ActingUser) -> Actor:
        if acting_user.has_role(self.admin_role):
            return Actor.ADMINISTRATOR
        return Actor.AUTHOR

    async def apply_decision(
        self,
        decision: ApprovalDecision,
        acting_user: ActingUser,
    ) -> Union[Submission, SoftResult]:
        """
        Approve, reject, cancel or keep pending a queued submission.

        Returns:
            The updated submission, or a SoftResult describing why the
            decision was not applied

        Raises:
            TransitionError: If the acting user may not take this decision
            ApprovalUpdateError: If the Cloud Library returned no result
        """
        target = decision.target_state
        if not decision.submission_id:
            logger.warning(f"Failed to apply {target.label} decision: profile has no cloud library id")
            return SoftResult.failed("Profile not in cloud library.")

        if not can_transition(SubmissionState.PENDING, target, self.actor_for(acting_user)):
            raise TransitionError(
                f"User {acting_user.id} cannot move a submission to {target.label}",
                target,
            )

        try:
            outcome = await self.client.update_approval_status(
                decision.submission_id, target, decision.description
            )
        except CloudLibraryError as e:
            logger.error(f"Cloud Library rejected {target.label} for {decision.submission_id}: {e}")
            return SoftResult.failed(str(e))
        except httpx.HTTPError as e:
            logger.error(f"Cloud Library unavailable updating {decision.submission_id}: {e}")
            return SoftResult.failed("Cloud library unavailable.")

        if outcome.kind == StatusUpdateKind.NO_RESULT or (outcome.confirmed and outcome.submission is None):
            logger.error(f"Approval update failed for {decision.submission_id}: {outcome.reason}")
            raise ApprovalUpdateError("Approval update failed.")

        if not outcome.confirmed:
            logger.warning(f"Status update failed for {decision.submission_id}: {outcome.reason}")
            return SoftResult.failed("Status update failed.")

        logger.info(
            f"User {acting_user.id} moved submission {decision.submission_id} to {target.label}"
        )

        profile = self.registry.find_by_remote_id(decision.submission_id)
        if profile is not None:
            submitted = SubmittedProfile.from_profile(profile, target, decision.description)
            self._sync_profile(profile, target)
            await self._notify_author(profile.author_id, submitted, target)

        return outcome.submission

    async def cancel_by_author(self, profile_id: int, acting_user: ActingUser) -> SoftResult:
        """
        Withdraw a profile's publish request on behalf of its author.

        The local profile is unlinked only once the Cloud Library confirms
        the cancellation. A nodeset the Cloud Library no longer returns has
        already left the approval queue and counts as cancelled.
        """
        try:
            profile = self.registry.get_by_id(profile_id)
            if profile is None or not self._may_cancel(profile, acting_user):
                logger.warning(f"Failed to cancel {profile_id}. Profile not found.")
                return SoftResult.failed("Profile not found.")

            if not profile.cloud_library_id:
                # Already unlinked by an earlier cancel, nothing to ask the Cloud Library
                outcome = StatusUpdateOutcome.already_in_state()
            else:
                try:
                    outcome = await self.client.update_approval_status(
                        profile.cloud_library_id,
                        SubmissionState.CANCELLED,
                        f"Canceled by user {acting_user.id}",
                    )
                except CloudLibraryError as e:
                    logger.error(f"Failed to cancel publish request to Cloud Library: {profile_id} {e}")
                    return SoftResult.failed(str(e))

            if outcome.kind == StatusUpdateKind.NO_RESULT:
                logger.info(f"Publish request for {profile_id} is no longer queued in the Cloud Library")
            elif not outcome.confirmed:
                logger.warning(f"Failed to cancel {profile_id}. Status update failed: {outcome.reason}")
                return SoftResult.failed("Status update failed.")

            submitted = SubmittedProfile.from_profile(profile, SubmissionState.CANCELLED)
            profile.unlink_cloud_library()
            self.registry.update(profile)
        except Exception:
            logger.exception(f"Failed to cancel publish request to Cloud Library: {profile_id}")
            return SoftResult.failed("Error cancelling publish request.")

        logger.info(f"User {acting_user.id} cancelled publish request for profile {profile_id}")
        try:
            await self.notifier.notify_cancelled(submitted, acting_user)
        except Exception:
            logger.exception(f"Failed to notify user {acting_user.id} of cancelled profile {profile_id}")
        return SoftResult.ok("Cancelled publish request.")

    def _may_cancel(self, profile, acting_user: ActingUser) -> bool:
        actor = self.actor_for(acting_user)
        if actor == Actor.AUTHOR and profile.author_id != acting_user.id:
            return False
        return can_transition(SubmissionState.PENDING, SubmissionState.CANCELLED, actor)

    def _sync_profile(self, profile, state: SubmissionState) -> None:
        """Bring the local profile in line with a confirmed remote status."""
        if state == SubmissionState.CANCELLED:
            profile.unlink_cloud_library()
        else:
            profile.cloud_lib_pending_approval = state not in TERMINAL_STATES
        try:
            self.registry.update(profile)
        except Exception:
            logger.exception(f"Failed to sync profile {profile.id} after {state.label} decision")

    async def _notify_author(self, author_id: Optional[int], submitted, state: SubmissionState) -> None:
        change_summary = describe_change(state)
        try:
            author = self.registry.get_user(author_id)
            if state == SubmissionState.APPROVED:
                await self.notifier.notify_approved(submitted, change_summary, author)
            elif state == SubmissionState.REJECTED:
                await self.notifier.notify_rejected(submitted, change_summary, author)
            else:
                await self.notifier.notify_status_changed(submitted, change_summary, author)
        except Exception:
            logger.exception(f"Failed to notify author of profile {submitted.profile_id}")
