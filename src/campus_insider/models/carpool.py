"""Carpool models - trips offered by drivers and the passengers who joined."""

from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_insider.db.types import UTCDateTime
from campus_insider.models.base import Base


class CarpoolTrip(Base):
    __tablename__ = "carpool_trips"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    driver_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    departure: Mapped[str] = mapped_column(String(100), nullable=False)
    destination: Mapped[str] = mapped_column(String(100), nullable=False)
    departure_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="PENDING", server_default="PENDING"
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    driver: Mapped["User"] = relationship()  # noqa: F821
    passengers: Mapped[list["CarpoolPassenger"]] = relationship(
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="CarpoolPassenger.id",
    )

    __table_args__ = (
        Index("ix_carpool_trips_status_departure", "status", "departure_time"),
    )


class CarpoolPassenger(Base):
    __tablename__ = "carpool_passengers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    trip_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("carpool_trips.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    joined_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    trip: Mapped[CarpoolTrip] = relationship(back_populates="passengers")
    user: Mapped["User"] = relationship()  # noqa: F821

    __table_args__ = (
        Index("ix_carpool_passengers_trip_user", "trip_id", "user_id", unique=True),
    )
