"""Load the channel catalog from a JSON file into the directory."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from simcast.core.config import settings
from simcast.db.session import session_scope
from simcast.schema.channel import ChannelSeed
from simcast.services.channel_directory import upsert_channel

logger = logging.getLogger(__name__)

_SEEDS = TypeAdapter(list[ChannelSeed])


def load_seeds(path: Path) -> list[ChannelSeed]:
    """Parse a JSON array of ``{abbreviatedName, name, youtubeId, category?}`` objects."""

    return _SEEDS.validate_json(path.read_bytes())


async def seed_channels(session: AsyncSession, seeds: list[ChannelSeed]) -> int:
    for seed in seeds:
        await upsert_channel(
            session,
            short_name=seed.short_name,
            name=seed.name,
            youtube_id=seed.youtube_id,
            category=seed.category,
        )
    await session.flush()
    return len(seeds)


async def main(path: Path) -> None:
    seeds = load_seeds(path)
    async with session_scope() as session:
        count = await seed_channels(session, seeds)
    logger.info("Seeded %s channels from %s", count, path)


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)

    if len(sys.argv) != 2:
        print("Usage: python -m simcast.jobs.seed_channels <channels.json>")
        sys.exit(1)

    asyncio.run(main(Path(sys.argv[1])))
