"""Follow relationship model."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from chirp.clock import utcnow
from chirp.database import Base


class Relationship(Base):
    """Directed follow edge: follower -> followed."""

    __tablename__ = "relationship"
    __table_args__ = (
        UniqueConstraint("follower_id", "followed_id", name="uq_relationship_follower_followed"),
        CheckConstraint("follower_id <> followed_id", name="ck_relationship_no_self_follow"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    follower_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    followed_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    follower = relationship("User", foreign_keys=[follower_id], back_populates="active_relationships")
    followed = relationship("User", foreign_keys=[followed_id], back_populates="passive_relationships")
