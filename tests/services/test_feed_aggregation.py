"""Tests for feed aggregation: quotas, fan-out, ranking and degradation."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from campus_insider.schemas.feed import (
    CarpoolView,
    EquipmentView,
    FeedItemType,
    PostCategory,
    PostView,
    UserSummary,
)
from campus_insider.services.feed_aggregation import (
    FeedQuotas,
    compute_quotas,
    get_feed,
    rank_items,
)
from campus_insider.services.sources import SourceUnavailable

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _user(user_id: int = 1) -> UserSummary:
    return UserSummary(
        id=user_id,
        first_name="Ada",
        last_name="Lovelace",
        email=f"user{user_id}@campus.example",
        role="USER",
        created_at=NOW - timedelta(days=100),
    )


def _equipment(item_id: int, age: timedelta) -> EquipmentView:
    return EquipmentView(
        id=item_id,
        name=f"Item {item_id}",
        category="OUTDOORS",
        owner_id=1,
        owner_name="Ada Lovelace",
        created_at=NOW - age,
    )


def _carpool(item_id: int, departs_in: timedelta, seats: int, age=timedelta(hours=1)) -> CarpoolView:
    return CarpoolView(
        id=item_id,
        departure="Campus",
        destination="Airport",
        departure_time=NOW + departs_in,
        status="PENDING",
        available_seats=seats,
        total_seats=seats,
        driver=_user(),
        created_at=NOW - age,
    )


def _post(item_id: int, age: timedelta, likes: int = 0, comments: int = 0,
          category: PostCategory = PostCategory.DISCUSSION) -> PostView:
    return PostView(
        id=item_id,
        title=f"Post {item_id}",
        content="...",
        category=category,
        like_count=likes,
        comment_count=comments,
        author=_user(),
        created_at=NOW - age,
    )


class FakeSources:
    """In-memory ContentSources recording the quotas it was asked for."""

    def __init__(self, equipment=(), carpools=(), posts=(), fail=(), delay=0.0):
        self.equipment = list(equipment)
        self.carpools = list(carpools)
        self.posts = list(posts)
        self.fail = set(fail)
        self.delay = delay
        self.calls: dict[str, int] = {}
        self.cancelled: list[str] = []

    async def _serve(self, name: str, items: list, count: int) -> list:
        self.calls[name] = count
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled.append(name)
            raise
        if name in self.fail:
            raise SourceUnavailable(name)
        return items[:count]

    async def fetch_recent_equipment(self, count, now):
        return await self._serve("equipment", self.equipment, count)

    async def fetch_upcoming_carpools(self, count, now):
        return await self._serve("carpool", self.carpools, count)

    async def fetch_recent_posts(self, count):
        return await self._serve("post", self.posts, count)


def _mixed_sources(**kwargs) -> FakeSources:
    return FakeSources(
        equipment=[_equipment(1, timedelta(hours=12)), _equipment(2, timedelta(days=3))],
        carpools=[
            _carpool(10, timedelta(hours=2), seats=3),
            _carpool(11, timedelta(days=2), seats=1),
        ],
        posts=[
            _post(20, timedelta(0), likes=4, comments=2, category=PostCategory.ANNOUNCEMENT),
            _post(21, timedelta(days=4)),
        ],
        **kwargs,
    )


# ---------------------------------------------------------------------------
# compute_quotas
# ---------------------------------------------------------------------------


class TestComputeQuotas:
    def test_page_size_20(self):
        assert compute_quotas(20) == FeedQuotas(equipment=6, carpool=8, post=6)

    def test_quotas_are_truncated(self):
        # 0.9, 1.2, 0.9
        assert compute_quotas(3) == FeedQuotas(equipment=0, carpool=1, post=0)

    def test_page_size_50(self):
        assert compute_quotas(50) == FeedQuotas(equipment=15, carpool=20, post=15)

    def test_zero(self):
        assert compute_quotas(0) == FeedQuotas(0, 0, 0)

    @pytest.mark.parametrize("page_size", range(1, 51))
    def test_quotas_never_exceed_page_size(self, page_size):
        assert sum(compute_quotas(page_size)) <= page_size


# ---------------------------------------------------------------------------
# get_feed
# ---------------------------------------------------------------------------


class TestGetFeed:
    @pytest.mark.asyncio
    async def test_sources_receive_quotas(self):
        sources = FakeSources()
        await get_feed(sources, user_id=1, page=1, page_size=20, now=NOW)
        assert sources.calls == {"equipment": 6, "carpool": 8, "post": 6}

    @pytest.mark.asyncio
    async def test_empty_sources_return_empty_page(self):
        page = await get_feed(FakeSources(), user_id=1, page=1, page_size=20, now=NOW)
        assert page.items == []
        assert page.total_items == 0
        assert page.page == 1
        assert page.page_size == 20

    @pytest.mark.asyncio
    async def test_page_size_zero_skips_sources(self):
        sources = _mixed_sources()
        page = await get_feed(sources, user_id=1, page=1, page_size=0, now=NOW)
        assert page.items == []
        assert page.total_items == 0
        assert sources.calls == {}

    @pytest.mark.asyncio
    async def test_items_ranked_by_priority(self):
        page = await get_feed(_mixed_sources(), user_id=1, page=1, page_size=20, now=NOW)
        # post 20: 27, carpool 10: 16, carpool 11: 7 + 2 = 9,
        # equipment 1: 6.5, equipment 2: 4, post 21: 0
        assert [(i.type, i.id) for i in page.items] == [
            (FeedItemType.POST, 20),
            (FeedItemType.CARPOOL, 10),
            (FeedItemType.CARPOOL, 11),
            (FeedItemType.EQUIPMENT, 1),
            (FeedItemType.EQUIPMENT, 2),
            (FeedItemType.POST, 21),
        ]
        assert [i.priority for i in page.items] == [27.0, 16.0, 9.0, 6.5, 4.0, 0.0]
        assert page.total_items == 6

    @pytest.mark.asyncio
    async def test_payload_matches_type(self):
        page = await get_feed(_mixed_sources(), user_id=1, page=1, page_size=20, now=NOW)
        expected = {
            FeedItemType.EQUIPMENT: EquipmentView,
            FeedItemType.CARPOOL: CarpoolView,
            FeedItemType.POST: PostView,
        }
        for item in page.items:
            assert isinstance(item.payload, expected[item.type])
            assert item.id == item.payload.id
            assert item.timestamp == item.payload.created_at

    @pytest.mark.asyncio
    async def test_ties_broken_by_newest_timestamp(self):
        # Posts older than 48h with no engagement all score 0
        sources = FakeSources(
            posts=[
                _post(1, timedelta(days=10)),
                _post(2, timedelta(days=3)),
                _post(3, timedelta(days=6)),
            ]
        )
        page = await get_feed(sources, user_id=1, page=1, page_size=20, now=NOW)
        assert [i.id for i in page.items] == [2, 3, 1]

    @pytest.mark.asyncio
    async def test_full_ties_keep_source_order(self):
        same_age = timedelta(days=10)
        sources = FakeSources(
            equipment=[_equipment(1, same_age)],
            posts=[_post(2, same_age), _post(3, same_age)],
        )
        page = await get_feed(sources, user_id=1, page=1, page_size=20, now=NOW)
        assert [(i.type, i.id) for i in page.items] == [
            (FeedItemType.EQUIPMENT, 1),
            (FeedItemType.POST, 2),
            (FeedItemType.POST, 3),
        ]

    @pytest.mark.asyncio
    async def test_truncates_to_page_size(self):
        sources = FakeSources(
            equipment=[_equipment(i, timedelta(hours=i)) for i in range(1, 10)],
            carpools=[_carpool(100 + i, timedelta(hours=i), seats=2) for i in range(1, 10)],
            posts=[_post(200 + i, timedelta(hours=i)) for i in range(1, 10)],
        )
        page = await get_feed(sources, user_id=1, page=1, page_size=5, now=NOW)
        # quotas 1, 2, 1
        assert len(page.items) == 4
        assert page.total_items == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page_size", [1, 2, 7, 13, 20, 33, 50])
    async def test_length_and_ordering_properties(self, page_size):
        sources = FakeSources(
            equipment=[_equipment(i, timedelta(hours=5 * i)) for i in range(1, 30)],
            carpools=[
                _carpool(100 + i, timedelta(hours=7 * i), seats=i % 4, age=timedelta(hours=i))
                for i in range(1, 30)
            ],
            posts=[_post(200 + i, timedelta(hours=3 * i), likes=i % 3) for i in range(1, 30)],
        )
        page = await get_feed(sources, user_id=1, page=1, page_size=page_size, now=NOW)
        assert len(page.items) <= page_size
        assert page.total_items == len(page.items)
        for a, b in zip(page.items, page.items[1:]):
            assert a.priority > b.priority or (
                a.priority == b.priority and a.timestamp >= b.timestamp
            )

    @pytest.mark.asyncio
    async def test_identical_inputs_identical_output(self):
        first = await get_feed(_mixed_sources(), user_id=1, page=1, page_size=20, now=NOW)
        second = await get_feed(_mixed_sources(), user_id=1, page=1, page_size=20, now=NOW)
        assert first.model_dump() == second.model_dump()

    @pytest.mark.asyncio
    async def test_user_id_does_not_change_ranking(self):
        first = await get_feed(_mixed_sources(), user_id=1, page=1, page_size=20, now=NOW)
        second = await get_feed(_mixed_sources(), user_id=99, page=1, page_size=20, now=NOW)
        assert first.model_dump() == second.model_dump()

    @pytest.mark.asyncio
    async def test_page_number_is_echoed(self):
        page = await get_feed(_mixed_sources(), user_id=1, page=3, page_size=10, now=NOW)
        assert page.page == 3
        assert page.page_size == 10

    @pytest.mark.asyncio
    async def test_naive_now_treated_as_utc(self):
        naive = NOW.replace(tzinfo=None)
        aware = await get_feed(_mixed_sources(), user_id=1, page=1, page_size=20, now=NOW)
        page = await get_feed(_mixed_sources(), user_id=1, page=1, page_size=20, now=naive)
        assert page.model_dump() == aware.model_dump()

    @pytest.mark.asyncio
    async def test_naive_source_timestamps_treated_as_utc(self):
        naive_now = NOW.replace(tzinfo=None)
        sources = FakeSources(
            equipment=[
                EquipmentView(
                    id=1,
                    name="Tent",
                    category="OUTDOORS",
                    owner_id=1,
                    owner_name="Ada Lovelace",
                    created_at=naive_now - timedelta(hours=24),
                )
            ],
            carpools=[
                CarpoolView(
                    id=10,
                    departure="Campus",
                    destination="Airport",
                    departure_time=naive_now + timedelta(hours=2),
                    status="PENDING",
                    available_seats=3,
                    total_seats=3,
                    driver=_user(),
                    created_at=naive_now,
                )
            ],
        )

        page = await get_feed(sources, user_id=1, page=1, page_size=20, now=NOW)

        assert [(item.type, item.priority) for item in page.items] == [
            (FeedItemType.CARPOOL, 16.0),
            (FeedItemType.EQUIPMENT, 6.0),
        ]
        assert all(item.timestamp.tzinfo is not None for item in page.items)
        assert page.items[1].payload.created_at == NOW - timedelta(hours=24)


# ---------------------------------------------------------------------------
# Degradation and cancellation
# ---------------------------------------------------------------------------


class TestDegradation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failing,missing_type",
        [
            ("equipment", FeedItemType.EQUIPMENT),
            ("carpool", FeedItemType.CARPOOL),
            ("post", FeedItemType.POST),
        ],
    )
    async def test_one_failing_source_is_dropped(self, failing, missing_type):
        page = await get_feed(
            _mixed_sources(fail={failing}), user_id=1, page=1, page_size=20, now=NOW
        )
        types = {i.type for i in page.items}
        assert missing_type not in types
        assert types == set(FeedItemType) - {missing_type}

    @pytest.mark.asyncio
    async def test_all_sources_failing_returns_empty_page(self):
        sources = _mixed_sources(fail={"equipment", "carpool", "post"})
        page = await get_feed(sources, user_id=1, page=1, page_size=20, now=NOW)
        assert page.items == []
        assert page.total_items == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self):
        class BrokenPosts(FakeSources):
            async def fetch_recent_posts(self, count):
                raise RuntimeError("boom")

        sources = BrokenPosts(equipment=[_equipment(1, timedelta(hours=1))])
        page = await get_feed(sources, user_id=1, page=1, page_size=20, now=NOW)
        assert [i.type for i in page.items] == [FeedItemType.EQUIPMENT]

    @pytest.mark.asyncio
    async def test_slow_source_times_out_and_is_dropped(self):
        class SlowCarpools(FakeSources):
            async def fetch_upcoming_carpools(self, count, now):
                await asyncio.sleep(10)
                return self.carpools

        sources = SlowCarpools(
            equipment=[_equipment(1, timedelta(hours=1))],
            carpools=[_carpool(10, timedelta(hours=2), seats=3)],
        )
        page = await get_feed(
            sources, user_id=1, page=1, page_size=20, now=NOW, source_timeout=0.05
        )
        assert [i.type for i in page.items] == [FeedItemType.EQUIPMENT]

    @pytest.mark.asyncio
    async def test_fetches_run_concurrently(self):
        sources = _mixed_sources(delay=0.2)
        loop = asyncio.get_running_loop()
        started = loop.time()
        await get_feed(sources, user_id=1, page=1, page_size=20, now=NOW)
        # Sequential fetches would take at least 0.6s
        assert loop.time() - started < 0.5

    @pytest.mark.asyncio
    async def test_cancelling_caller_cancels_all_fetches(self):
        sources = _mixed_sources(delay=10)
        task = asyncio.create_task(
            get_feed(sources, user_id=1, page=1, page_size=20, now=NOW)
        )
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert sorted(sources.cancelled) == ["carpool", "equipment", "post"]


# ---------------------------------------------------------------------------
# rank_items
# ---------------------------------------------------------------------------


class TestRankItems:
    @pytest.mark.asyncio
    async def test_rank_items_truncates_without_reordering_top(self):
        page = await get_feed(_mixed_sources(), user_id=1, page=1, page_size=20, now=NOW)
        top = rank_items(list(page.items), 2)
        assert [i.id for i in top] == [20, 10]
