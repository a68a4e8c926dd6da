from datetime import datetime, timedelta
from typing import Iterable, Optional

from jose import JWTError, jwt

from profiledesigner.core.approval.models import ActingUser
from profiledesigner.core.config import Settings


def create_access_token(
    user_id: int,
    settings: Settings,
    *,
    email: Optional[str] = None,
    name: Optional[str] = None,
    roles: Iterable[str] = (),
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed JWT access token for a Profile Designer user."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=30))
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "name": name,
        "roles": list(roles),
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str, settings: Settings) -> Optional[ActingUser]:
    """Decode and validate a JWT token. Returns the acting user if valid."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        return None

    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]

    return ActingUser(
        id=int(user_id),
        email=payload.get("email"),
        display_name=payload.get("name"),
        roles=frozenset(roles),
    )
