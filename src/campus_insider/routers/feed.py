"""Feed endpoint - one ranked page of equipment, carpools and posts."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_insider.config import Settings, get_settings
from campus_insider.dependencies import get_app_settings, get_current_user, get_session_factory
from campus_insider.models.user import User
from campus_insider.schemas.feed import FeedPage
from campus_insider.services.feed_aggregation import get_feed
from campus_insider.services.rate_limit import InMemoryRateLimiter
from campus_insider.services.sources import DatabaseContentSources

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feed", tags=["feed"])

_feed_limiter = InMemoryRateLimiter(
    max_requests=get_settings().feed_rate_limit_per_minute,
    window_seconds=60,
)


def _check_rate_limit(user: User) -> None:
    """Enforce per-user rate limit on the feed."""
    if not _feed_limiter.is_allowed(str(user.id)):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Try again later.",
        )


@router.get("", response_model=FeedPage)
async def read_feed(
    response: Response,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    current_user: User = Depends(get_current_user),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_app_settings),
) -> FeedPage:
    """Combined activity feed for the current user.

    Items are ranked by priority, newest first on ties. page_size is capped
    at the configured maximum. total_items counts the items on this page only.
    """
    _check_rate_limit(current_user)
    response.headers["X-RateLimit-Remaining"] = str(_feed_limiter.remaining(str(current_user.id)))

    if page_size is None:
        page_size = settings.feed_default_page_size
    page_size = min(page_size, settings.feed_max_page_size)

    sources = DatabaseContentSources(session_factory)
    return await get_feed(sources, current_user.id, page, page_size)
