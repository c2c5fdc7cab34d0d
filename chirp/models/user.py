"""User model."""

import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Integer, String
from sqlalchemy.orm import relationship

from chirp.clock import utcnow
from chirp.database import Base


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class Gender(str, enum.Enum):
    FEMALE = "female"
    MALE = "male"
    OTHER = "other"


class User(Base):
    """Application user.

    Digest columns are written only by the credential service. The plaintext
    tokens they are derived from are returned to callers and never stored.
    """

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False)
    # Stored lower-cased, so the unique index enforces case-insensitive uniqueness.
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_digest = Column(String(256), nullable=False)
    role = Column(Enum(Role, values_callable=lambda e: [m.value for m in e], name="user_role"),
                  nullable=False, default=Role.USER)
    gender = Column(Enum(Gender, values_callable=lambda e: [m.value for m in e], name="user_gender"), nullable=True)

    remember_digest = Column(String(256), nullable=True)

    activated = Column(Boolean, nullable=False, default=False)
    activation_digest = Column(String(256), nullable=True)
    activated_at = Column(DateTime, nullable=True)

    reset_digest = Column(String(256), nullable=True)
    reset_sent_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    microposts = relationship("Micropost", back_populates="user", cascade="all, delete-orphan")
    active_relationships = relationship(
        "Relationship",
        foreign_keys="Relationship.follower_id",
        back_populates="follower",
        cascade="all, delete-orphan",
    )
    passive_relationships = relationship(
        "Relationship",
        foreign_keys="Relationship.followed_id",
        back_populates="followed",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
