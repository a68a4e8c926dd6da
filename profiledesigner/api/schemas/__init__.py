"""Request schemas for the Profile Designer API."""

from .cloudlib import ApprovalRequestModel, IdIntModel

__all__ = ["ApprovalRequestModel", "IdIntModel"]
