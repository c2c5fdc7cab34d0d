"""User directory: lookup, listing and deletion."""

import logging

from sqlalchemy.orm import Session

from chirp.models.user import User

logger = logging.getLogger("chirp")


class UserService:
    """Handles user lookup and removal."""

    def get(self, db: Session, user_id: int) -> User | None:
        return db.get(User, user_id)

    def list_users(self, db: Session, limit: int = 30, offset: int = 0) -> tuple[list[User], int]:
        """Activated users ordered by id. Returns (items, total_count)."""
        query = db.query(User).filter(User.activated.is_(True))
        total = query.count()
        return query.order_by(User.id.asc()).offset(offset).limit(limit).all(), total

    def delete(self, db: Session, user: User) -> None:
        """Delete a user along with their microposts and follow edges in both directions."""
        user_id = user.id
        db.delete(user)
        db.commit()
        logger.info("Deleted user id=%s", user_id)


_user_service: UserService | None = None


def get_user_service() -> UserService:
    """Get singleton user service instance."""
    global _user_service
    if _user_service is None:
        _user_service = UserService()
    return _user_service
