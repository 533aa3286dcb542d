"""Schemas for the combined activity feed.

Views are read projections built fresh for every request. Feed items are a
discriminated union keyed on ``type`` so the payload shape always matches
the item type.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, Field

from campus_insider.db.types import as_utc

# Naive values are read as UTC so scoring always compares aware datetimes.
UTCTimestamp = Annotated[datetime, AfterValidator(as_utc)]


class FeedItemType(str, Enum):
    EQUIPMENT = "EQUIPMENT"
    CARPOOL = "CARPOOL"
    POST = "POST"


class PostCategory(str, Enum):
    ANNOUNCEMENT = "ANNOUNCEMENT"
    DISCUSSION = "DISCUSSION"
    EVENT = "EVENT"
    TIP = "TIP"


class UserSummary(BaseModel):
    """Denormalized identity embedded in carpool and post views."""

    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    created_at: UTCTimestamp

    model_config = {"from_attributes": True, "frozen": True}

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class EquipmentView(BaseModel):
    id: int
    name: str
    category: str
    description: str | None = None
    owner_id: int
    owner_name: str
    created_at: UTCTimestamp

    model_config = {"frozen": True}


class CarpoolView(BaseModel):
    id: int
    departure: str
    destination: str
    departure_time: UTCTimestamp
    status: str
    available_seats: int
    total_seats: int
    driver: UserSummary
    passengers: list[UserSummary] = Field(default_factory=list)
    created_at: UTCTimestamp

    model_config = {"frozen": True}


class PostView(BaseModel):
    id: int
    title: str
    content: str
    image_url: str | None = None
    category: PostCategory
    tags: list[str] = Field(default_factory=list)
    like_count: int = 0
    comment_count: int = 0
    author: UserSummary
    created_at: UTCTimestamp
    updated_at: UTCTimestamp | None = None

    model_config = {"frozen": True}


class _FeedItemBase(BaseModel):
    id: int
    timestamp: UTCTimestamp
    priority: float

    model_config = {"frozen": True}


class EquipmentFeedItem(_FeedItemBase):
    type: Literal[FeedItemType.EQUIPMENT] = FeedItemType.EQUIPMENT
    payload: EquipmentView


class CarpoolFeedItem(_FeedItemBase):
    type: Literal[FeedItemType.CARPOOL] = FeedItemType.CARPOOL
    payload: CarpoolView


class PostFeedItem(_FeedItemBase):
    type: Literal[FeedItemType.POST] = FeedItemType.POST
    payload: PostView


FeedItem = Annotated[
    EquipmentFeedItem | CarpoolFeedItem | PostFeedItem,
    Field(discriminator="type"),
]


class FeedPage(BaseModel):
    """Response for GET /api/feed.

    ``total_items`` is the number of items on this page, not a count of
    every eligible candidate, so it cannot be used to compute page counts.
    """

    items: list[FeedItem]
    page: int
    page_size: int
    total_items: int
