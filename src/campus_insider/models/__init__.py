"""SQLAlchemy ORM models."""

from campus_insider.models.base import Base
from campus_insider.models.user import User
from campus_insider.models.access_token import AccessToken
from campus_insider.models.equipment import Equipment
from campus_insider.models.carpool import CarpoolPassenger, CarpoolTrip
from campus_insider.models.post import Post, PostLike

__all__ = [
    "Base",
    "User",
    "AccessToken",
    "Equipment",
    "CarpoolTrip",
    "CarpoolPassenger",
    "Post",
    "PostLike",
]
