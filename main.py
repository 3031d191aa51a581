# main.py
import asyncio
import logging
from catalog.bot import CatalogBot
from catalog.config import Config, setup_logging
from catalog.database import Database

async def main():
    # Setup logging
    setup_logging()
    logger = logging.getLogger(__name__)

    Config.validate()
    db = Database()
    try:
        await db.connect()
        bot = await CatalogBot.create(db)
        logger.info("Starting bot...")
        await bot.start()
    except Exception as e:
        logger.error(f"Error starting bot: {e}", exc_info=True)
        raise
    finally:
        await db.close()

if __name__ == "__main__":
    asyncio.run(main())
