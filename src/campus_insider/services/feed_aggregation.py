"""Feed aggregation service - builds one ranked page from all content sources.

The three sources are fetched concurrently and joined before ranking. A
source that fails or times out contributes nothing to the page; the feed
itself never fails because of a source. Cancelling the caller cancels every
in-flight fetch and no partial page is returned.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import NamedTuple, TypeVar

from campus_insider.config import get_settings
from campus_insider.db.types import as_utc
from campus_insider.schemas.feed import (
    CarpoolFeedItem,
    EquipmentFeedItem,
    FeedItem,
    FeedPage,
    PostFeedItem,
)
from campus_insider.services.scoring import score_carpool, score_equipment, score_post
from campus_insider.services.sources import ContentSources, SourceUnavailable

logger = logging.getLogger(__name__)

EQUIPMENT_SHARE = 0.3
CARPOOL_SHARE = 0.4
POST_SHARE = 0.3

_View = TypeVar("_View")


class FeedQuotas(NamedTuple):
    """Maximum number of candidates requested from each source."""

    equipment: int
    carpool: int
    post: int


def compute_quotas(page_size: int) -> FeedQuotas:
    """Split a page between sources: 30% equipment, 40% carpools, 30% posts.

    Shares are truncated, so the quotas may add up to less than page_size.
    """
    return FeedQuotas(
        equipment=int(page_size * EQUIPMENT_SHARE),
        carpool=int(page_size * CARPOOL_SHARE),
        post=int(page_size * POST_SHARE),
    )


async def _fetch_or_empty(
    source: str,
    fetch: Callable[[], Awaitable[list[_View]]],
    timeout: float | None,
) -> list[_View]:
    """Run one source fetch, degrading to an empty list on failure or timeout."""
    try:
        async with asyncio.timeout(timeout):
            return await fetch()
    except TimeoutError:
        logger.warning("Feed source %s timed out after %ss", source, timeout)
    except SourceUnavailable as exc:
        logger.warning("Feed source %s unavailable: %s", source, exc.__cause__ or exc)
    except Exception:
        logger.exception("Feed source %s failed", source)
    return []


def rank_items(items: list[FeedItem], page_size: int) -> list[FeedItem]:
    """Sort by priority then timestamp, both descending, and keep one page.

    The sort is stable, so items with equal keys keep their merge order.
    """
    ranked = sorted(items, key=lambda item: (item.priority, item.timestamp), reverse=True)
    return ranked[:page_size]


async def get_feed(
    sources: ContentSources,
    user_id: int,
    page: int = 1,
    page_size: int = 20,
    *,
    now: datetime | None = None,
    source_timeout: float | None = None,
) -> FeedPage:
    """Return one ranked page of equipment, carpools and posts.

    ``now`` is the time basis for both source windows and scoring; it
    defaults to the current UTC time. ``user_id`` is accepted for the
    boundary contract but does not yet influence filtering or ranking.
    Page parameters are validated by the caller; a page_size of 0 yields
    an empty page.
    """
    if page_size <= 0:
        return FeedPage(items=[], page=page, page_size=page_size, total_items=0)

    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    if source_timeout is None:
        source_timeout = get_settings().feed_source_timeout_seconds

    quotas = compute_quotas(page_size)
    logger.debug("Building feed for user %s page %s with quotas %s", user_id, page, quotas)

    async with asyncio.TaskGroup() as tg:
        equipment_task = tg.create_task(
            _fetch_or_empty(
                "equipment",
                lambda: sources.fetch_recent_equipment(quotas.equipment, now),
                source_timeout,
            )
        )
        carpool_task = tg.create_task(
            _fetch_or_empty(
                "carpool",
                lambda: sources.fetch_upcoming_carpools(quotas.carpool, now),
                source_timeout,
            )
        )
        post_task = tg.create_task(
            _fetch_or_empty(
                "post",
                lambda: sources.fetch_recent_posts(quotas.post),
                source_timeout,
            )
        )

    equipment = equipment_task.result()
    carpools = carpool_task.result()
    posts = post_task.result()
    logger.debug(
        "Feed candidates: %d equipment, %d carpool, %d post",
        len(equipment),
        len(carpools),
        len(posts),
    )

    items: list[FeedItem] = []
    items.extend(
        EquipmentFeedItem(
            id=e.id, timestamp=e.created_at, priority=score_equipment(e, now), payload=e
        )
        for e in equipment
    )
    items.extend(
        CarpoolFeedItem(
            id=c.id, timestamp=c.created_at, priority=score_carpool(c, now), payload=c
        )
        for c in carpools
    )
    items.extend(
        PostFeedItem(id=p.id, timestamp=p.created_at, priority=score_post(p, now), payload=p)
        for p in posts
    )

    page_items = rank_items(items, page_size)
    return FeedPage(
        items=page_items,
        page=page,
        page_size=page_size,
        total_items=len(page_items),
    )
