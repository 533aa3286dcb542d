"""Content sources for the activity feed.

Each fetcher applies its own eligibility filter, orders by its own key,
limits to ``count`` and projects the rows into read-only views with the
referenced users embedded. Rows that cannot be projected are skipped.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from typing import Protocol, TypeVar

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import joinedload, selectinload

from campus_insider.models.carpool import CarpoolPassenger, CarpoolTrip
from campus_insider.models.equipment import Equipment
from campus_insider.models.post import Post
from campus_insider.models.user import User
from campus_insider.schemas.feed import CarpoolView, EquipmentView, PostView, UserSummary

logger = logging.getLogger(__name__)

RECENT_EQUIPMENT_WINDOW = timedelta(days=7)
UPCOMING_CARPOOL_WINDOW = timedelta(days=7)
CARPOOL_OPEN_STATUS = "PENDING"

_Row = TypeVar("_Row")
_View = TypeVar("_View")


class SourceUnavailable(Exception):
    """A content source could not be read."""

    def __init__(self, source: str) -> None:
        super().__init__(f"{source} source unavailable")
        self.source = source


class MalformedSourceRecord(Exception):
    """A stored record is missing data required to build its view."""


class ContentSources(Protocol):
    """The three read-only sources the feed is built from."""

    async def fetch_recent_equipment(self, count: int, now: datetime) -> list[EquipmentView]: ...

    async def fetch_upcoming_carpools(self, count: int, now: datetime) -> list[CarpoolView]: ...

    async def fetch_recent_posts(self, count: int) -> list[PostView]: ...


def split_tags(raw: str | None) -> list[str]:
    """Split a comma-joined tag field, trimming each entry."""
    if raw is None:
        return []
    return [tag.strip() for tag in raw.split(",")]


def _user_summary(user: User | None, role: str) -> UserSummary:
    if user is None:
        raise MalformedSourceRecord(f"missing {role}")
    return UserSummary.model_validate(user)


def to_equipment_view(equipment: Equipment) -> EquipmentView:
    if equipment.owner is None:
        raise MalformedSourceRecord("missing owner")
    return EquipmentView(
        id=equipment.id,
        name=equipment.name,
        category=equipment.category,
        description=equipment.description,
        owner_id=equipment.owner_id,
        owner_name=equipment.owner.display_name,
        created_at=equipment.created_at,
    )


def to_carpool_view(trip: CarpoolTrip) -> CarpoolView:
    return CarpoolView(
        id=trip.id,
        departure=trip.departure,
        destination=trip.destination,
        departure_time=trip.departure_time,
        status=trip.status,
        available_seats=trip.available_seats,
        total_seats=trip.available_seats + len(trip.passengers),
        driver=_user_summary(trip.driver, "driver"),
        passengers=[_user_summary(p.user, "passenger") for p in trip.passengers],
        created_at=trip.created_at,
    )


def to_post_view(post: Post) -> PostView:
    return PostView(
        id=post.id,
        title=post.title,
        content=post.content,
        image_url=post.image_url,
        category=post.category,
        tags=split_tags(post.tags),
        like_count=post.like_count,
        comment_count=post.comment_count,
        author=_user_summary(post.author, "author"),
        created_at=post.created_at,
        updated_at=post.updated_at,
    )


def project_views(
    source: str, rows: Sequence[_Row], build: Callable[[_Row], _View]
) -> list[_View]:
    """Build views for rows, skipping any record that cannot be projected."""
    views = []
    for row in rows:
        try:
            views.append(build(row))
        except (MalformedSourceRecord, ValidationError) as exc:
            logger.warning(
                "Skipping malformed %s record %s: %s", source, getattr(row, "id", "?"), exc
            )
    return views


async def fetch_recent_equipment(
    db: AsyncSession, count: int, now: datetime
) -> list[EquipmentView]:
    """Equipment shared in the last 7 days, newest first."""
    if count <= 0:
        return []

    stmt = (
        select(Equipment)
        .options(joinedload(Equipment.owner))
        .where(Equipment.created_at >= now - RECENT_EQUIPMENT_WINDOW)
        .where(Equipment.created_at <= now)
        .order_by(Equipment.created_at.desc(), Equipment.id.desc())
        .limit(count)
    )
    result = await db.execute(stmt)
    return project_views("equipment", result.scalars().all(), to_equipment_view)


async def fetch_upcoming_carpools(
    db: AsyncSession, count: int, now: datetime
) -> list[CarpoolView]:
    """Open trips with free seats departing in the next 7 days, soonest first."""
    if count <= 0:
        return []

    stmt = (
        select(CarpoolTrip)
        .options(
            joinedload(CarpoolTrip.driver),
            selectinload(CarpoolTrip.passengers).joinedload(CarpoolPassenger.user),
        )
        .where(CarpoolTrip.status == CARPOOL_OPEN_STATUS)
        .where(CarpoolTrip.available_seats > 0)
        .where(CarpoolTrip.departure_time >= now)
        .where(CarpoolTrip.departure_time <= now + UPCOMING_CARPOOL_WINDOW)
        .order_by(CarpoolTrip.departure_time.asc(), CarpoolTrip.id.asc())
        .limit(count)
    )
    result = await db.execute(stmt)
    return project_views("carpool", result.scalars().all(), to_carpool_view)


async def fetch_recent_posts(db: AsyncSession, count: int) -> list[PostView]:
    """Active posts, newest first, with no time bound."""
    if count <= 0:
        return []

    stmt = (
        select(Post)
        .options(joinedload(Post.author))
        .where(Post.is_active.is_(True))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(count)
    )
    result = await db.execute(stmt)
    return project_views("post", result.scalars().all(), to_post_view)


class DatabaseContentSources:
    """ContentSources backed by the ORM, one session per fetch.

    Database errors surface as SourceUnavailable so the feed can drop the
    source and keep going.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def fetch_recent_equipment(self, count: int, now: datetime) -> list[EquipmentView]:
        try:
            async with self._session_factory() as session:
                return await fetch_recent_equipment(session, count, now)
        except SQLAlchemyError as exc:
            raise SourceUnavailable("equipment") from exc

    async def fetch_upcoming_carpools(self, count: int, now: datetime) -> list[CarpoolView]:
        try:
            async with self._session_factory() as session:
                return await fetch_upcoming_carpools(session, count, now)
        except SQLAlchemyError as exc:
            raise SourceUnavailable("carpool") from exc

    async def fetch_recent_posts(self, count: int) -> list[PostView]:
        try:
            async with self._session_factory() as session:
                return await fetch_recent_posts(session, count)
        except SQLAlchemyError as exc:
            raise SourceUnavailable("post") from exc
