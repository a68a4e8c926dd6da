"""Profile database model.

Local record of a profile (OPC UA nodeset) authored in Profile Designer,
including its link to a Cloud Library submission.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship

from profiledesigner.db.base import Base


class Profile(Base):
    """
    A locally authored profile.

    ``cloud_library_id`` references the Cloud Library submission while the
    profile is published or queued for approval, and is cleared once the
    submission is cancelled.
    """
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    namespace = Column(String(400), nullable=False)
    title = Column(String(400), nullable=True)
    version = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Cloud Library link
    cloud_library_id = Column(String(100), nullable=True, index=True)
    cloud_lib_pending_approval = Column(Boolean, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    author = relationship("User", back_populates="profiles")

    def unlink_cloud_library(self) -> None:
        """Forget the Cloud Library submission this profile pointed at."""
        self.cloud_library_id = None
        self.cloud_lib_pending_approval = None

    def __repr__(self) -> str:
        return f"<Profile {self.namespace} ({self.cloud_library_id or 'local'})>"
