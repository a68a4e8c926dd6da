"""Cloud Library moderation API endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from pydantic import ValidationError

from profiledesigner.api.deps import get_approval_query, get_current_user, get_state_machine
from profiledesigner.api.schemas import ApprovalRequestModel, IdIntModel
from profiledesigner.core.approval import (
    ApprovalStateMachine,
    PaginatedApprovalQuery,
    PendingApprovalsFilter,
    PendingApprovalsResult,
)
from profiledesigner.core.approval.errors import (
    ApprovalUpdateError,
    DependencyUnavailableError,
    TransitionError,
)
from profiledesigner.core.approval.models import ActingUser, ApprovalDecision
from profiledesigner.core.rbac import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cloudlibrary", tags=["cloudlibrary"])


def _parse_body(model, payload: Any, action: str):
    """Validate a request body, answering 400 for absent or invalid input."""
    if payload is None:
        logger.warning(f"{action}: Invalid model (null)")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid model (null)",
        )
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"{action}: Invalid model ({e.error_count()} error(s))")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid model",
        ) from e


@router.post("/pendingapprovals")
@require_admin
async def get_pending_approvals(
    request: Request,
    payload: Any = Body(None),
    current_user: ActingUser = Depends(get_current_user),
    query: PaginatedApprovalQuery = Depends(get_approval_query),
):
    """List Cloud Library submissions awaiting an administrator decision."""
    filters = PendingApprovalsFilter.from_payload(payload)
    try:
        result: PendingApprovalsResult = await query.get_pending_approvals(filters, current_user)
    except DependencyUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return result.model_dump(mode="json", by_alias=True)


@router.post("/approve")
@require_admin
async def approve(
    request: Request,
    payload: Any = Body(None),
    current_user: ActingUser = Depends(get_current_user),
    machine: ApprovalStateMachine = Depends(get_state_machine),
):
    """Approve, reject, cancel or keep pending a queued submission."""
    model: ApprovalRequestModel = _parse_body(ApprovalRequestModel, payload, "CloudLibrary|Approve")
    decision = ApprovalDecision(
        submission_id=model.id,
        target_state=model.approve_state,
        description=model.approval_description,
    )

    try:
        result = await machine.apply_decision(decision, current_user)
    except TransitionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ApprovalUpdateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return result.model_dump(mode="json", by_alias=True)


@router.post("/publishcancel")
async def cancel_publish(
    payload: Any = Body(None),
    current_user: ActingUser = Depends(get_current_user),
    machine: ApprovalStateMachine = Depends(get_state_machine),
):
    """Withdraw the caller's publish request for a profile."""
    model: IdIntModel = _parse_body(IdIntModel, payload, "CloudLibrary|CancelPublish")
    result = await machine.cancel_by_author(model.id, current_user)
    return result.model_dump(mode="json", by_alias=True)
