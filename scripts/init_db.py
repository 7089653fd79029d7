"""Script to initialize the record store and regional databases."""

import asyncio

from medical_appointments.config import settings
from medical_appointments.database import dispose_engines, engine, get_regional_engine
from medical_appointments.models.appointments import metadata as appointments_metadata
from medical_appointments.models.regional_appointments import metadata as regional_metadata


async def init_db() -> None:
    """Initialize every database by creating its tables."""
    async with engine.begin() as conn:
        await conn.run_sync(appointments_metadata.create_all)
    print("✓ Appointment record store initialized")

    for country in settings.regional_database_urls:
        async with get_regional_engine(country).begin() as conn:
            await conn.run_sync(regional_metadata.create_all)
        print(f"✓ Regional store {country} initialized")

    await dispose_engines()


if __name__ == "__main__":
    asyncio.run(init_db())
