"""User repository for database operations."""

from typing import Optional
from sqlalchemy.orm import Session

from teamgraph.repositories.base_repository import BaseRepository
from teamgraph.models.user import User
from teamgraph.utils.invitation import normalize_email


class UserRepository(BaseRepository[User]):
    """Repository for User model operations."""

    def __init__(self, db: Session):
        super().__init__(User, db)

    def get_by_email(self, email: str) -> Optional[User]:
        """
        Get user by email.

        Args:
            email: User email, normalized before lookup

        Returns:
            User or None if not found
        """
        return self.db.query(User).filter(User.email == normalize_email(email)).first()
