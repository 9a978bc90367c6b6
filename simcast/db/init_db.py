import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from simcast.core.config import settings
from simcast.db.models import Base
from simcast.db.session import engine

logger = logging.getLogger(__name__)


async def init_models(db_engine: AsyncEngine) -> None:
    """Create the channel, user, favorite and session tables."""

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    asyncio.run(init_models(engine))
