"""Local profile store for the Profile Designer API."""

from profiledesigner.db.base import Base
from profiledesigner.db.session import build_session_factory

__all__ = ["Base", "build_session_factory"]
