import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auth import AccessGuard, Identity, clear_token_cookie, get_access_guard, get_identity, set_token_cookie
from config import Settings, get_settings
from coordinator import BookingCoordinator
from database import Database, get_database
from errors import Forbidden, ServiceError
from identifiers import ensure_valid_id
from logging_config import configure_logging
from schemas import Ack, BookingCreate, BookingCreated, BookingOut, BookingUpdate, ReviewIn, RoomOut, TokenRequest
from seeds import seed_rooms
from strategies import get_strategy

logger = logging.getLogger(__name__)


def get_coordinator(request: Request) -> BookingCoordinator:
    return request.app.state.coordinator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _ensure_same_identity(email: Optional[str], identity: Identity) -> None:
    if email != identity.email:
        raise Forbidden()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Hotel Booking Server")

    database = Database(settings.DATABASE_URL, echo=settings.DB_ECHO, timeout=settings.DB_TIMEOUT_SECONDS)
    strategy = get_strategy(settings.CONSISTENCY_STRATEGY)
    app.state.settings = settings
    app.state.database = database
    app.state.coordinator = BookingCoordinator(database, strategy)
    app.state.access_guard = AccessGuard(settings.ACCESS_TOKEN_SECRET, expires_hours=settings.TOKEN_EXPIRES_HOURS)

    @app.on_event("startup")
    async def on_startup():
        await database.connect()
        if settings.SEED_ROOMS:
            await seed_rooms(database)
        logger.info(f"Hotel server started with {strategy.name} consistency strategy", extra={"strategy": strategy.name})

    @app.on_event("shutdown")
    async def on_shutdown():
        await database.disconnect()

    # --- Error handlers: every failure is {"success": false, "message": ...} ---
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        logger.info(
            f"{request.method} {request.url.path} -> {exc.status_code} {exc.__class__.__name__}",
            extra={"request_path": request.url.path},
        )
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        locations = (".".join(str(part) for part in error["loc"][1:]) for error in exc.errors())
        fields = ", ".join(location for location in locations if location) or "request body"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": f"Invalid or missing fields: {fields}"},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"request_path": request.url.path})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Internal server error"},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    @app.get("/")
    async def root():
        return {"message": "the hotel server is running"}

    @app.get("/health")
    async def health(database: Database = Depends(get_database)) -> JSONResponse:
        try:
            await database.ping()
        except Exception:
            logger.warning("Health check: database unreachable")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "degraded", "database": "disconnected"},
            )
        return JSONResponse(content={"status": "healthy", "database": "connected"})

    # --- Rooms ---
    @app.get("/rooms", response_model=List[RoomOut])
    async def list_rooms(coordinator: BookingCoordinator = Depends(get_coordinator)):
        return await coordinator.list_rooms()

    @app.get("/rooms/{room_id}", response_model=RoomOut)
    async def get_room(room_id: str, coordinator: BookingCoordinator = Depends(get_coordinator)):
        return await coordinator.get_room(room_id)

    @app.post("/review", response_model=Ack)
    async def post_review(
        review: ReviewIn,
        room_id: Optional[str] = Query(default=None, alias="id"),
        email: Optional[str] = Query(default=None),
        identity: Identity = Depends(get_identity),
        coordinator: BookingCoordinator = Depends(get_coordinator),
    ):
        await coordinator.add_review(room_id, review.model_dump(mode="json"), email, identity.email)
        return Ack(message="Review added")

    # --- Bookings ---
    @app.post("/booking", response_model=BookingCreated)
    async def book_room(
        booking_data: BookingCreate,
        identity: Identity = Depends(get_identity),
        coordinator: BookingCoordinator = Depends(get_coordinator),
    ):
        guest_fields = booking_data.guest_fields()
        if "email" in guest_fields:
            _ensure_same_identity(guest_fields["email"], identity)
        booking_id = await coordinator.create_booking(
            booking_data.room_id, booking_data.booking_date, identity.email, guest_fields
        )
        return BookingCreated(message="Booking successful", id=booking_id)

    @app.get("/my-bookings", response_model=List[BookingOut])
    async def my_bookings(
        email: Optional[str] = Query(default=None),
        identity: Identity = Depends(get_identity),
        coordinator: BookingCoordinator = Depends(get_coordinator),
    ):
        return await coordinator.list_user_bookings(email, identity.email)

    @app.delete("/cancel-booking", response_model=Ack)
    async def cancel_booking(
        booking_id: Optional[str] = Query(default=None, alias="bookingId"),
        room_id: Optional[str] = Query(default=None, alias="roomId"),
        date: Optional[str] = Query(default=None),
        email: Optional[str] = Query(default=None),
        identity: Identity = Depends(get_identity),
        coordinator: BookingCoordinator = Depends(get_coordinator),
    ):
        ensure_valid_id(booking_id, "booking id")
        ensure_valid_id(room_id, "room id")
        _ensure_same_identity(email, identity)
        await coordinator.cancel_booking(booking_id, room_id, date, identity.email)
        return Ack(message="Booking cancelled")

    @app.patch("/update-booking", response_model=Ack)
    async def update_booking(
        update: BookingUpdate,
        identity: Identity = Depends(get_identity),
        coordinator: BookingCoordinator = Depends(get_coordinator),
    ):
        ensure_valid_id(update.booking_id, "booking id")
        ensure_valid_id(update.room_id, "room id")
        _ensure_same_identity(update.user_email, identity)
        await coordinator.reschedule_booking(
            update.booking_id,
            update.room_id,
            update.current_booking_date,
            update.new_booking_date,
            identity.email,
        )
        return Ack(message="Booking updated")

    # --- Auth cookie ---
    @app.post("/get-token", response_model=Ack)
    async def get_token(
        payload: TokenRequest,
        response: Response,
        guard: AccessGuard = Depends(get_access_guard),
        settings: Settings = Depends(get_app_settings),
    ):
        token = guard.issue(payload.model_dump())
        set_token_cookie(response, token, guard, settings)
        return Ack(message="Token issued")

    @app.get("/remove-token", response_model=Ack)
    async def remove_token(response: Response, settings: Settings = Depends(get_app_settings)):
        clear_token_cookie(response, settings)
        return Ack(message="Token removed")


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=get_settings().PORT)
