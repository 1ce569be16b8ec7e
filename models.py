from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import JSON, Column, DateTime, UniqueConstraint

from identifiers import new_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Room(SQLModel, table=True):
    __tablename__ = "rooms"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    name: str
    description: str = ""
    price_per_night: float = 0
    capacity: int = 1
    image: Optional[str] = None
    # Denormalized: raw date strings, one per active booking on this room
    booked_dates: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    reviews: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    __table_args__ = (
        # Database-level protection against double booking
        UniqueConstraint("room_id", "date", name="unique_room_date"),
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    room_id: str = Field(foreign_key="rooms.id", index=True, max_length=32)
    owner_email: str = Field(index=True)
    date: str
    # Guest info sent with the booking, opaque to the coordinator
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
