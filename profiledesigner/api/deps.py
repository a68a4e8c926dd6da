from typing import Generator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from profiledesigner.core.approval import ApprovalStateMachine, PaginatedApprovalQuery
from profiledesigner.core.approval.models import ActingUser
from profiledesigner.core.config import Settings
from profiledesigner.core.security import decode_token
from profiledesigner.services import CloudLibraryClient, NotificationDispatcher, ProfileRegistry

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator:
    """Database session dependency."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    settings: Settings = Depends(get_app_settings),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> ActingUser:
    """Get the acting user from the bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    user = decode_token(credentials.credentials, settings)
    if user is None:
        raise credentials_exception
    return user


def get_cloudlib_client(request: Request) -> CloudLibraryClient:
    return request.app.state.cloudlib_client


def get_notifier(request: Request) -> NotificationDispatcher:
    return request.app.state.notifier


def get_registry(db: Session = Depends(get_db)) -> ProfileRegistry:
    return ProfileRegistry(db)


def get_approval_query(
    client: CloudLibraryClient = Depends(get_cloudlib_client),
) -> PaginatedApprovalQuery:
    return PaginatedApprovalQuery(client)


def get_state_machine(
    settings: Settings = Depends(get_app_settings),
    client: CloudLibraryClient = Depends(get_cloudlib_client),
    registry: ProfileRegistry = Depends(get_registry),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> ApprovalStateMachine:
    """Build the state machine for one request."""
    return ApprovalStateMachine(client, registry, notifier, admin_role=settings.admin_role)
