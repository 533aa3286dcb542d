#!/usr/bin/env python3
"""
seed-demo-data.py — Populate a development database with feed content.

Creates the tables, a demo user with an access token, and a few equipment
listings, carpool trips and posts so GET /api/feed has something to rank.

Usage:
    python scripts/seed-demo-data.py
    DATABASE_URL=sqlite+aiosqlite:///./demo.db python scripts/seed-demo-data.py
"""

import asyncio
from datetime import datetime, timedelta, timezone

from campus_insider.db.engine import dispose_engine, get_session_factory, init_db
from campus_insider.models import CarpoolPassenger, CarpoolTrip, Equipment, Post, User
from campus_insider.services.access_tokens import issue_access_token


# ANSI color codes
class C:
    GREEN = "\033[92m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RESET = "\033[0m"


async def seed() -> str:
    now = datetime.now(timezone.utc)
    factory = get_session_factory()

    async with factory() as db:
        alice = User(email="alice@campus.example", first_name="Alice", last_name="Martin")
        bob = User(email="bob@campus.example", first_name="Bob", last_name="Nguyen")
        carol = User(email="carol@campus.example", first_name="Carol", last_name="Diaz")
        db.add_all([alice, bob, carol])
        await db.flush()

        db.add_all([
            Equipment(
                owner=bob,
                name="Camping tent",
                category="OUTDOORS",
                description="Two-person tent, fits in a backpack",
                created_at=now - timedelta(hours=6),
            ),
            Equipment(
                owner=carol,
                name="Graphing calculator",
                category="STUDY",
                created_at=now - timedelta(days=3),
            ),
        ])

        trip = CarpoolTrip(
            driver=bob,
            departure="Main campus",
            destination="Airport",
            departure_time=now + timedelta(hours=5),
            available_seats=2,
        )
        trip.passengers.append(CarpoolPassenger(user=carol))
        db.add_all([
            trip,
            CarpoolTrip(
                driver=carol,
                departure="North dorms",
                destination="City centre",
                departure_time=now + timedelta(days=2),
                available_seats=3,
            ),
        ])

        db.add_all([
            Post(
                author=alice,
                title="Library hours extended",
                content="The library stays open until midnight during exams.",
                category="ANNOUNCEMENT",
                tags="library, exams",
                created_at=now - timedelta(hours=2),
            ),
            Post(
                author=carol,
                title="Best study spots?",
                content="Where do you go when the library is packed?",
                category="DISCUSSION",
                like_count=4,
                comment_count=2,
                created_at=now - timedelta(hours=20),
            ),
        ])

        token = await issue_access_token(db, alice.id)
        await db.commit()

    return token


async def main() -> None:
    await init_db()
    try:
        token = await seed()
    finally:
        await dispose_engine()

    print(f"\n{C.BOLD}campus-insider demo data{C.RESET}")
    print(f"{C.DIM}{'=' * 60}{C.RESET}\n")
    print(f"  {C.GREEN}Seeded 3 users, 2 equipment, 2 carpools, 2 posts{C.RESET}")
    print(f"  {C.BOLD}Access token:{C.RESET} {C.CYAN}{token}{C.RESET}\n")
    print(f"  {C.DIM}curl -H 'Authorization: Bearer {token}' http://localhost:8080/api/feed{C.RESET}\n")


if __name__ == "__main__":
    asyncio.run(main())
