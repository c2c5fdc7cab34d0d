"""ORM models. Importing this package registers every table with Base.metadata."""

from chirp.models.micropost import Micropost
from chirp.models.relationship import Relationship
from chirp.models.user import Gender, Role, User

__all__ = ["Gender", "Micropost", "Relationship", "Role", "User"]
