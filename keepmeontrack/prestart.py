"""Create the database tables before the server starts.

Run ``python -m keepmeontrack.prestart --reset`` to drop and recreate them.
"""
import asyncio
import logging
import sys

from keepmeontrack.core.database import drop_db, init_db

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("prestart")


async def main(reset: bool = False):
    if reset:
        logger.warning("Dropping all tables")
        await drop_db()
    await init_db()
    logger.info("Database tables checked/created")


if __name__ == "__main__":
    asyncio.run(main(reset="--reset" in sys.argv[1:]))
