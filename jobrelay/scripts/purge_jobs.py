from __future__ import annotations

import argparse
import asyncio
import logging

from jobrelay.config import Settings
from jobrelay.database import Database
from jobrelay.crud.job import purge_jobs_older_than


async def purge_jobs(database_url: str, *, days: int) -> int:
    db = Database(database_url)
    try:
        await db.create_all()
        async with db.session() as session:
            return await purge_jobs_older_than(session, days)
    finally:
        await db.dispose()


def main(argv: list[str] | None = None) -> None:
    settings = Settings()

    parser = argparse.ArgumentParser(description="Delete jobs older than N days, whatever their status.")
    parser.add_argument("--days", type=int, default=settings.job_retention_days)
    parser.add_argument("--database-url", default=settings.database_url)
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level)
    removed = asyncio.run(purge_jobs(args.database_url, days=args.days))
    print(f"Removed {removed} job(s) older than {args.days} day(s)")


if __name__ == "__main__":
    main()
