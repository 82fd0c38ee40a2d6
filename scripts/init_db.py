"""Script to create the schema directly, for local development."""

import asyncio

from sqlalchemy import text

from carebook.database import dispose_engine, get_engine
from carebook.models import metadata


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    engine = get_engine()
    async with engine.begin() as conn:
        if engine.dialect.name == "postgresql":
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))

        await conn.run_sync(metadata.create_all)

    await dispose_engine()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
