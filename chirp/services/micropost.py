"""Micropost service for creating, listing and deleting posts."""

from sqlalchemy.orm import Session

from chirp.clock import Clock, utcnow
from chirp.config import Settings, get_settings
from chirp.models.micropost import Micropost
from chirp.models.user import User
from chirp.services.validation import ValidationError, validate_micropost_content


class MicropostService:
    """Handles micropost CRUD."""

    def __init__(self, settings: Settings | None = None, clock: Clock = utcnow) -> None:
        self.settings = settings or get_settings()
        self.clock = clock

    def create(self, db: Session, user: User, content: str) -> Micropost:
        """Create a micropost. Raises ValidationError on empty or over-long content."""
        errors = validate_micropost_content(content, self.settings)
        if errors:
            raise ValidationError(errors)

        now = self.clock()
        post = Micropost(user_id=user.id, content=content, created_at=now, updated_at=now)
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    def list_for_user(self, db: Session, user_id: int, limit: int = 50, offset: int = 0) -> tuple[list[Micropost], int]:
        """Get a user's microposts, newest first. Returns (items, total_count)."""
        query = db.query(Micropost).filter(Micropost.user_id == user_id)
        total = query.count()
        items = query.order_by(Micropost.created_at.desc(), Micropost.id.desc()).offset(offset).limit(limit).all()
        return items, total

    def get(self, db: Session, micropost_id: int) -> Micropost | None:
        return db.get(Micropost, micropost_id)

    def delete(self, db: Session, user: User, micropost_id: int) -> bool:
        """Delete a micropost owned by ``user``. Returns False if there is no such post."""
        post = db.query(Micropost).filter(Micropost.id == micropost_id, Micropost.user_id == user.id).first()
        if not post:
            return False
        db.delete(post)
        db.commit()
        return True


_micropost_service: MicropostService | None = None


def get_micropost_service() -> MicropostService:
    """Get singleton micropost service instance."""
    global _micropost_service
    if _micropost_service is None:
        _micropost_service = MicropostService()
    return _micropost_service
