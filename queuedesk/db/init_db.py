"""
Schema creation and seeding of the single-row tables.

The counters and the settings row are created here so the rest of the
service can assume they exist; ``CounterService`` still creates a missing
counter on first use.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlmodel import SQLModel

from queuedesk.core.logger import logger
from queuedesk.db.models import Counter, CounterKind, SystemSettings, SETTINGS_ROW_ID


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def seed_defaults(session: AsyncSession) -> None:
    for kind in CounterKind:
        if await session.get(Counter, kind.value) is None:
            session.add(Counter(id=kind.value, last_number=0))
            logger.info(f"Seeded {kind.value} counter")

    if await session.get(SystemSettings, SETTINGS_ROW_ID) is None:
        session.add(SystemSettings(id=SETTINGS_ROW_ID))
        logger.info("Seeded system settings")

    await session.commit()


async def init_db(engine: AsyncEngine, session: AsyncSession) -> None:
    await create_tables(engine)
    await seed_defaults(session)
