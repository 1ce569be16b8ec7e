"""Sample rooms for local development, inserted at startup when SEED_ROOMS is on."""

import logging

from sqlmodel import select

from database import Database
from models import Room

logger = logging.getLogger(__name__)

SAMPLE_ROOMS = [
    {
        "name": "Deluxe King Room",
        "description": "King bed, city view and a rain shower.",
        "price_per_night": 180,
        "capacity": 2,
        "image": "https://images.example.com/rooms/deluxe-king.jpg",
    },
    {
        "name": "Twin Garden Room",
        "description": "Two single beds opening onto the garden terrace.",
        "price_per_night": 140,
        "capacity": 2,
        "image": "https://images.example.com/rooms/twin-garden.jpg",
    },
    {
        "name": "Family Suite",
        "description": "Two bedrooms, a lounge and a kitchenette.",
        "price_per_night": 320,
        "capacity": 5,
        "image": "https://images.example.com/rooms/family-suite.jpg",
    },
    {
        "name": "Single Economy Room",
        "description": "Compact room with a single bed and a work desk.",
        "price_per_night": 85,
        "capacity": 1,
        "image": "https://images.example.com/rooms/single-economy.jpg",
    },
]


async def seed_rooms(database: Database) -> int:
    """Insert SAMPLE_ROOMS into an empty rooms table. Returns how many were added."""
    async with database.session() as session:
        existing = await session.execute(select(Room.id).limit(1))
        if existing.first() is not None:
            logger.info("Rooms already present, skipping seed")
            return 0
        session.add_all(Room(**data) for data in SAMPLE_ROOMS)
        await session.commit()
    logger.info(f"Seeded {len(SAMPLE_ROOMS)} rooms")
    return len(SAMPLE_ROOMS)
