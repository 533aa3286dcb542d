"""Priority scoring for feed items.

Each content type has its own heuristic. Higher scores sort first. The
weights are fixed; changing them changes feed ordering for every client.
"""

from datetime import datetime

from campus_insider.schemas.feed import CarpoolView, EquipmentView, PostCategory, PostView

EQUIPMENT_RECENCY_DAYS = 7

CARPOOL_URGENT_HOURS = 24
CARPOOL_SOON_HOURS = 72
CARPOOL_URGENT_SCORE = 10
CARPOOL_SOON_SCORE = 7
CARPOOL_DEFAULT_SCORE = 5
CARPOOL_SEAT_WEIGHT = 2

POST_LIKE_WEIGHT = 1.5
POST_COMMENT_WEIGHT = 2
POST_RECENCY_HOURS = 48
POST_RECENCY_DIVISOR = 4
ANNOUNCEMENT_BOOST = 5


def days_since(moment: datetime, now: datetime) -> float:
    """Fractional days elapsed from moment to now (negative if moment is later)."""
    return (now - moment).total_seconds() / 86400


def hours_since(moment: datetime, now: datetime) -> float:
    """Fractional hours elapsed from moment to now."""
    return (now - moment).total_seconds() / 3600


def hours_until(moment: datetime, now: datetime) -> float:
    """Fractional hours remaining from now until moment."""
    return (moment - now).total_seconds() / 3600


def score_equipment(equipment: EquipmentView, now: datetime) -> float:
    """Newer equipment ranks higher: 7 when just shared, 0 after a week."""
    return float(max(0, EQUIPMENT_RECENCY_DAYS - days_since(equipment.created_at, now)))


def score_carpool(carpool: CarpoolView, now: datetime) -> float:
    """Trips departing soon and with more free seats rank higher.

    - 10: departs within 24 hours
    - 7: departs within 72 hours
    - 5: anything later

    Each available seat adds 2.
    """
    hours = hours_until(carpool.departure_time, now)
    if hours < CARPOOL_URGENT_HOURS:
        urgency = CARPOOL_URGENT_SCORE
    elif hours < CARPOOL_SOON_HOURS:
        urgency = CARPOOL_SOON_SCORE
    else:
        urgency = CARPOOL_DEFAULT_SCORE

    availability = carpool.available_seats * CARPOOL_SEAT_WEIGHT
    return float(urgency + availability)


def score_post(post: PostView, now: datetime) -> float:
    """Engagement plus a recency bonus (0-12 over two days), announcements boosted."""
    engagement = post.like_count * POST_LIKE_WEIGHT + post.comment_count * POST_COMMENT_WEIGHT
    recency = max(0, POST_RECENCY_HOURS - hours_since(post.created_at, now)) / POST_RECENCY_DIVISOR
    boost = ANNOUNCEMENT_BOOST if post.category == PostCategory.ANNOUNCEMENT else 0
    return float(engagement + recency + boost)
