"""Follow graph and activity feed."""

import logging
from dataclasses import dataclass

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chirp.models.micropost import Micropost
from chirp.models.relationship import Relationship
from chirp.models.user import User
from chirp.services.validation import FieldError, ValidationError

logger = logging.getLogger("chirp")


@dataclass
class FollowCounts:
    following: int
    followers: int


class SocialGraphService:
    """Handles follow relationships and the feed built from them."""

    def _edge(self, db: Session, user: User, other: User) -> Relationship | None:
        return (
            db.query(Relationship)
            .filter(Relationship.follower_id == user.id, Relationship.followed_id == other.id)
            .first()
        )

    def follow(self, db: Session, user: User, other: User) -> None:
        """Follow another user. Following someone already followed changes nothing."""
        if user.id == other.id:
            raise ValidationError([FieldError("followed_id", "can't follow yourself")])
        if self._edge(db, user, other):
            return

        db.add(Relationship(follower_id=user.id, followed_id=other.id))
        try:
            db.commit()
        except IntegrityError:
            # A concurrent request created the same edge first.
            db.rollback()
            logger.debug("Duplicate follow %s -> %s ignored", user.id, other.id)

    def unfollow(self, db: Session, user: User, other: User) -> None:
        """Stop following another user. A no-op if not following."""
        db.query(Relationship).filter(
            Relationship.follower_id == user.id, Relationship.followed_id == other.id
        ).delete(synchronize_session=False)
        db.commit()

    def is_following(self, db: Session, user: User, other: User) -> bool:
        return self._edge(db, user, other) is not None

    def following(self, db: Session, user: User) -> list[User]:
        """Users followed by ``user``, ordered by id."""
        return (
            db.query(User)
            .join(Relationship, Relationship.followed_id == User.id)
            .filter(Relationship.follower_id == user.id)
            .order_by(User.id)
            .all()
        )

    def followers(self, db: Session, user: User) -> list[User]:
        """Users following ``user``, ordered by id."""
        return (
            db.query(User)
            .join(Relationship, Relationship.follower_id == User.id)
            .filter(Relationship.followed_id == user.id)
            .order_by(User.id)
            .all()
        )

    def counts(self, db: Session, user: User) -> FollowCounts:
        return FollowCounts(
            following=db.query(Relationship).filter(Relationship.follower_id == user.id).count(),
            followers=db.query(Relationship).filter(Relationship.followed_id == user.id).count(),
        )

    def feed(self, db: Session, user: User, limit: int | None = None, offset: int = 0) -> list[Micropost]:
        """Posts by the user and everyone they follow, newest first.

        Runs as one query with the followed ids as a subselect.
        """
        following_ids = select(Relationship.followed_id).where(Relationship.follower_id == user.id)
        query = (
            db.query(Micropost)
            .filter(or_(Micropost.user_id.in_(following_ids), Micropost.user_id == user.id))
            .order_by(Micropost.created_at.desc(), Micropost.id.desc())
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()


_social_graph_service: SocialGraphService | None = None


def get_social_graph_service() -> SocialGraphService:
    """Get singleton social graph service instance."""
    global _social_graph_service
    if _social_graph_service is None:
        _social_graph_service = SocialGraphService()
    return _social_graph_service
