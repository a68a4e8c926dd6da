"""Database models for the Profile Designer API."""

from profiledesigner.db.models.user import User
from profiledesigner.db.models.profile import Profile

__all__ = [
    "User",
    "Profile",
]
