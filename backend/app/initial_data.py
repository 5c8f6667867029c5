import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

# Import app.db.base to ensure all models are registered
import app.db.base  # noqa: F401
from app.crud.base import dialect_insert
from app.db import session as db_session
from app.db.models.language import Language
from app.db.session import _initialize_fastapi_db_resources_sync
from app.modules.translation.core.constants import SUPPORTED_LANGUAGES

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Verify project root in sys.path
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


async def seed_languages(db: AsyncSession) -> int:
    """
    Upserts the supported language list. Existing rows keep their id and
    is_active flag; names and direction are refreshed. The caller commits.
    """
    insert = dialect_insert(db)
    for code, name, native_name, is_rtl in SUPPORTED_LANGUAGES:
        stmt = insert(Language).values(
            code=code, name=name, native_name=native_name, is_rtl=is_rtl, is_active=True
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["code"],
            set_={
                "name": stmt.excluded.name,
                "native_name": stmt.excluded.native_name,
                "is_rtl": stmt.excluded.is_rtl,
            },
        )
        await db.execute(stmt)
    logger.info(f"Seeded {len(SUPPORTED_LANGUAGES)} supported languages.")
    return len(SUPPORTED_LANGUAGES)


async def init_db(db: AsyncSession) -> None:
    """Initializes the database with the reference data translation jobs rely on."""
    logger.info("Running initial_data.py initialization...")
    await seed_languages(db)
    await db.commit()
    logger.info("Initial data creation process finished.")


async def main() -> None:
    """Main asynchronous function to set up dependencies and run database initialization."""
    logger.info("Initializing service for initial_data script...")

    _initialize_fastapi_db_resources_sync()

    if db_session.FastAPISessionLocal is None:
        raise RuntimeError("FastAPISessionLocal is None after initialization.")

    async with db_session.FastAPISessionLocal() as session:
        try:
            await init_db(session)
            logger.info("Database operations committed successfully.")
        except Exception as e:
            await session.rollback()
            logger.error(f"An error occurred during database initialization: {e}", exc_info=True)
            sys.exit(1)

    await db_session._dispose_fastapi_db_resources_async()
    logger.info("Service initialization for initial_data script finished.")


if __name__ == "__main__":
    logger.info("Running initial_data.py script...")
    asyncio.run(main())
    logger.info("Finished running initial_data.py script.")
