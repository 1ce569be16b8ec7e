"""
Booking coordinator.

Owns every mutation that has to keep the ``rooms.booked_dates`` lists and the
``bookings`` table in step: create, cancel and reschedule. The room side is
a denormalized copy of the booking dates, so each of these operations is a
pair of writes whose transaction boundaries are decided by the configured
ConsistencyStrategy.

Identifiers and required inputs are validated before any store call. Store
failures are mapped onto the error taxonomy in errors.py:

- IntegrityError (unique room/date constraint) -> DateConflict
- connection errors and timeouts -> StoreUnavailable (no retry)
- anything else from SQLAlchemy -> BookingFailed
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from database import Database
from errors import BookingFailed, DateConflict, Forbidden, InvalidInput, NotFound, ServiceError, StoreUnavailable
from identifiers import ensure_valid_id
from models import Booking, Room, utcnow
from stores import BookingStore, RoomStore
from strategies import ConsistencyStrategy, TransactionalStrategy

logger = logging.getLogger(__name__)

Write = Callable[[], Awaitable[None]]


def _require(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidInput(f"{field} is required")
    return str(value).strip()


class BookingCoordinator:
    def __init__(self, database: Database, strategy: Optional[ConsistencyStrategy] = None):
        self.database = database
        self.strategy = strategy or TransactionalStrategy()

    @asynccontextmanager
    async def _session(self, operation: str):
        """Open a session for one operation and translate store failures."""
        try:
            async with self.database.session() as session:
                yield session
        except ServiceError:
            raise
        except IntegrityError as exc:
            logger.warning(f"{operation}: unique room/date constraint rejected write")
            raise DateConflict() from exc
        except (OperationalError, InterfaceError, PoolTimeoutError, asyncio.TimeoutError) as exc:
            logger.error(f"{operation}: store unavailable: {exc.__class__.__name__}")
            raise StoreUnavailable() from exc
        except SQLAlchemyError as exc:
            logger.exception(f"{operation}: store error")
            raise BookingFailed() from exc

    async def _write_pair(self, session: AsyncSession, operation: str, first: Write, second: Write, **extra) -> None:
        await first()
        await self.strategy.checkpoint(session)
        try:
            await second()
            await self.strategy.complete(session)
        except Exception as exc:
            if not self.strategy.commits_each_write:
                raise
            # The first write is already committed and stays in place
            logger.warning(
                f"{operation} partially applied, manual reconciliation required",
                extra={"strategy": self.strategy.name, **extra},
            )
            raise BookingFailed(f"{operation} was only partially applied") from exc

    # ------------------------------------------------------------------
    # Rooms (pass-through reads and reviews)
    # ------------------------------------------------------------------

    async def list_rooms(self) -> List[Room]:
        async with self._session("list_rooms") as session:
            return await RoomStore(session).list_all()

    async def get_room(self, room_id: str) -> Room:
        ensure_valid_id(room_id, "room id")
        async with self._session("get_room") as session:
            room = await RoomStore(session).get(room_id)
        if room is None:
            raise NotFound("Room not found")
        return room

    async def add_review(self, room_id: str, review: Dict[str, Any], reviewer_email: str, caller_email: str) -> None:
        ensure_valid_id(room_id, "room id")
        if reviewer_email != caller_email:
            raise Forbidden()
        record = {**review, "email": caller_email, "createdAt": utcnow().isoformat()}
        async with self._session("add_review") as session:
            result = await RoomStore(session).append_review(room_id, record)
            if not result.applied:
                raise NotFound("Room not found")
            await session.commit()
        logger.info("Review added", extra={"room_id": room_id})

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------

    async def create_booking(
        self, room_id: str, date: str, owner_email: str, extra_fields: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Book ``date`` on a room for ``owner_email``.

        Inserts the booking and appends the date to the room. Raises NotFound
        for an unknown room and DateConflict when the date is already taken,
        including when a concurrent request wins the race.
        """
        ensure_valid_id(room_id, "room id")
        date = _require(date, "Booking date")

        async with self._session("create_booking") as session:
            rooms = RoomStore(session)
            bookings = BookingStore(session)

            room = await rooms.get(room_id, for_update=True)
            if room is None:
                raise NotFound("Room not found")
            if date in room.booked_dates:
                raise DateConflict()

            booking = Booking(room_id=room_id, owner_email=owner_email, date=date, details=dict(extra_fields or {}))

            async def insert_booking():
                await bookings.insert(booking)

            async def append_date():
                if not (await rooms.append_date(room_id, date)).applied:
                    raise BookingFailed("Could not update room dates")

            await self._write_pair(
                session, "create_booking", insert_booking, append_date, room_id=room_id, booking_id=booking.id
            )

        logger.info("Booking created", extra={"room_id": room_id, "booking_id": booking.id})
        return booking.id

    async def cancel_booking(self, booking_id: str, room_id: str, date: str, caller_email: str) -> None:
        ensure_valid_id(booking_id, "booking id")
        ensure_valid_id(room_id, "room id")
        date = _require(date, "Booking date")

        async with self._session("cancel_booking") as session:
            rooms = RoomStore(session)
            bookings = BookingStore(session)

            booking = await bookings.get(booking_id)
            if booking is None:
                raise NotFound("Booking not found")
            if booking.owner_email != caller_email:
                raise Forbidden()
            if booking.room_id != room_id or booking.date != date:
                raise NotFound("Booking not found for this room and date")

            async def release_date():
                if not (await rooms.remove_date(room_id, date)).applied:
                    raise NotFound("Date not found or already removed")

            async def delete_booking():
                if await bookings.delete(booking_id) == 0:
                    raise NotFound("Booking not found")

            await self._write_pair(
                session, "cancel_booking", release_date, delete_booking, room_id=room_id, booking_id=booking_id
            )

        logger.info("Booking cancelled", extra={"room_id": room_id, "booking_id": booking_id})

    async def reschedule_booking(
        self, booking_id: str, room_id: str, current_date: str, new_date: str, caller_email: str
    ) -> None:
        """
        Move a booking from ``current_date`` to ``new_date``.

        The room update is conditional: it only matches a room that still
        holds ``current_date``, so a stale reschedule fails with NotFound
        instead of overwriting someone else's date. A ``new_date`` already
        booked on the room is rejected with DateConflict.
        """
        ensure_valid_id(booking_id, "booking id")
        ensure_valid_id(room_id, "room id")
        current_date = _require(current_date, "Current booking date")
        new_date = _require(new_date, "New booking date")

        async with self._session("reschedule_booking") as session:
            rooms = RoomStore(session)
            bookings = BookingStore(session)

            booking = await bookings.get(booking_id)
            if booking is None:
                raise NotFound("Booking not found")
            if booking.owner_email != caller_email:
                raise Forbidden()
            if booking.room_id != room_id or booking.date != current_date:
                raise NotFound("Booking not found for this room and date")

            room = await rooms.get(room_id, for_update=True)
            if room is not None and new_date != current_date and new_date in room.booked_dates:
                raise DateConflict()

            async def move_room_date():
                if not (await rooms.replace_date(room_id, current_date, new_date)).matched:
                    raise NotFound("Room or booking date not found")

            async def move_booking_date():
                if not (await bookings.set_date(booking_id, new_date)).matched:
                    raise NotFound("Booking not found")

            await self._write_pair(
                session,
                "reschedule_booking",
                move_room_date,
                move_booking_date,
                room_id=room_id,
                booking_id=booking_id,
            )

        logger.info("Booking rescheduled", extra={"room_id": room_id, "booking_id": booking_id})

    async def list_user_bookings(self, owner_email: str, caller_email: str) -> List[Dict[str, Any]]:
        """Owner's bookings, newest first, each joined with its room's booked dates."""
        if owner_email != caller_email:
            raise Forbidden()

        async with self._session("list_user_bookings") as session:
            user_bookings = await BookingStore(session).list_for_owner(owner_email)
            rooms = await RoomStore(session).get_many(b.room_id for b in user_bookings)

        enriched = []
        for booking in user_bookings:
            room = rooms.get(booking.room_id)
            enriched.append(
                {
                    **booking.model_dump(),
                    "booked_dates": list(room.booked_dates) if room else [],
                    "room_name": room.name if room else None,
                }
            )
        return enriched
