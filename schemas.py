"""Pydantic schemas for requests and responses. Wire names are camelCase."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RoomOut(CamelModel):
    id: str
    name: str
    description: str
    price_per_night: float
    capacity: int
    image: Optional[str] = None
    booked_dates: List[str]
    reviews: List[Dict[str, Any]]


class BookingCreate(CamelModel):
    """roomId and bookingDate, plus any guest info fields (kept as-is)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    room_id: str
    booking_date: Optional[str] = None

    def guest_fields(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class BookingUpdate(CamelModel):
    room_id: str
    booking_id: str
    user_email: str
    current_booking_date: Optional[str] = None
    new_booking_date: Optional[str] = None


class BookingOut(CamelModel):
    id: str
    room_id: str
    owner_email: str
    date: str
    details: Dict[str, Any]
    created_at: datetime
    room_name: Optional[str] = None
    booked_dates: List[str]


class ReviewIn(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    rating: int = Field(ge=1, le=5)
    comment: str = ""


class TokenRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str = Field(min_length=3)


class Ack(BaseModel):
    success: bool = True
    message: str = "ok"


class BookingCreated(Ack):
    id: str
