"""Collaborators of the approval workflow."""

from profiledesigner.services.cloudlib_client import CloudLibraryClient
from profiledesigner.services.notifications import NotificationDispatcher
from profiledesigner.services.registry import ProfileRegistry

__all__ = [
    "CloudLibraryClient",
    "NotificationDispatcher",
    "ProfileRegistry",
]
