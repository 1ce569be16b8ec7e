"""
Room and booking stores.

Thin wrappers over one AsyncSession. They never commit: the consistency
strategy owns the transaction boundary. Array and field updates report how
many records matched and how many were actually modified, so the caller can
tell "not found" apart from "nothing to change".
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlmodel import select
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from models import Booking, Room


@dataclass(frozen=True)
class UpdateResult:
    matched: int
    modified: int

    @property
    def applied(self) -> bool:
        return self.matched > 0 and self.modified > 0


NO_MATCH = UpdateResult(matched=0, modified=0)


class RoomStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, room_id: str, for_update: bool = False) -> Optional[Room]:
        statement = select(Room).where(Room.id == room_id)
        if for_update:
            # Row lock on the room: the per-room serialization point.
            # Refresh an instance already in the session, it may predate a commit.
            statement = statement.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def get_many(self, room_ids: Iterable[str]) -> Dict[str, Room]:
        ids = set(room_ids)
        if not ids:
            return {}
        result = await self.session.execute(select(Room).where(Room.id.in_(ids)))
        return {room.id: room for room in result.scalars().all()}

    async def list_all(self) -> List[Room]:
        result = await self.session.execute(select(Room).order_by(Room.name))
        return list(result.scalars().all())

    async def insert(self, room: Room) -> Room:
        self.session.add(room)
        await self.session.flush()
        return room

    async def append_date(self, room_id: str, date: str) -> UpdateResult:
        room = await self.get(room_id, for_update=True)
        if room is None:
            return NO_MATCH
        room.booked_dates = [*room.booked_dates, date]
        await self.session.flush()
        return UpdateResult(matched=1, modified=1)

    async def remove_date(self, room_id: str, date: str) -> UpdateResult:
        """Remove the first occurrence of date. Only rooms currently holding it match."""
        room = await self.get(room_id, for_update=True)
        if room is None or date not in room.booked_dates:
            return NO_MATCH
        dates = list(room.booked_dates)
        dates.remove(date)
        room.booked_dates = dates
        await self.session.flush()
        return UpdateResult(matched=1, modified=1)

    async def replace_date(self, room_id: str, current: str, new: str) -> UpdateResult:
        """Conditional replace: matches only a room that still holds ``current``."""
        room = await self.get(room_id, for_update=True)
        if room is None or current not in room.booked_dates:
            return NO_MATCH
        if current == new:
            return UpdateResult(matched=1, modified=0)
        dates = list(room.booked_dates)
        dates[dates.index(current)] = new
        room.booked_dates = dates
        await self.session.flush()
        return UpdateResult(matched=1, modified=1)

    async def append_review(self, room_id: str, review: Dict[str, Any]) -> UpdateResult:
        room = await self.get(room_id, for_update=True)
        if room is None:
            return NO_MATCH
        room.reviews = [*room.reviews, review]
        await self.session.flush()
        return UpdateResult(matched=1, modified=1)


class BookingStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, booking_id: str) -> Optional[Booking]:
        result = await self.session.execute(select(Booking).where(Booking.id == booking_id))
        return result.scalars().first()

    async def list_for_owner(self, owner_email: str) -> List[Booking]:
        statement = (
            select(Booking)
            .where(Booking.owner_email == owner_email)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def insert(self, booking: Booking) -> Booking:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def set_date(self, booking_id: str, date: str) -> UpdateResult:
        booking = await self.get(booking_id)
        if booking is None:
            return NO_MATCH
        if booking.date == date:
            return UpdateResult(matched=1, modified=0)
        booking.date = date
        await self.session.flush()
        return UpdateResult(matched=1, modified=1)

    async def delete(self, booking_id: str) -> int:
        result = await self.session.execute(delete(Booking).where(Booking.id == booking_id))
        await self.session.flush()
        return result.rowcount
