"""API routers for the Profile Designer API."""

from . import cloudlibrary
from . import health

__all__ = [
    "cloudlibrary",
    "health",
]
