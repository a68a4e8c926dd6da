"""Local profile registry backed by SQLAlchemy."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from profiledesigner.db.models import Profile, User


class ProfileRegistry:
    """Local mirror of profiles and their Cloud Library links."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, profile_id: int) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.id == profile_id).first()

    def find_by_remote_id(self, submission_id: str) -> Optional[Profile]:
        """Get the profile linked to a Cloud Library submission."""
        return self.db.query(Profile).filter(
            Profile.cloud_library_id == submission_id
        ).first()

    def get_user(self, user_id: Optional[int]) -> Optional[User]:
        if user_id is None:
            return None
        return self.db.query(User).filter(User.id == user_id).first()

    def update(self, profile: Profile) -> None:
        """Persist changes made to a profile."""
        profile.updated_at = datetime.utcnow()
        self.db.add(profile)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(profile)
