#!/usr/bin/env python3
"""Merge the works of a collection into a single new work.

Every work must have exactly one published version holding exactly one
file. Metadata mismatches between works block the merge unless --force
is given, in which case the first work (lowest id) supplies any value
the collection itself does not have.

Usage:
    python scripts/merge_collection.py 42
    python scripts/merge_collection.py 42 --force
"""

import argparse
import asyncio
import sys

from services.work_registry.app.config import get_settings
from services.work_registry.app.core.errors import CollectionNotFoundError
from services.work_registry.app.core.merge import MergeCollection
from services.work_registry.app.indexing import build_index_updater
from shared.utils.db import close_db, init_db
from shared.utils.logging import configure_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("collection_id", type=int, help="Collection to merge")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Merge even if the works' metadata disagree",
    )
    return parser.parse_args(argv)


async def merge_collection(collection_id: int, force: bool) -> int:
    """Run one merge and print its outcome as JSON."""
    settings = get_settings()
    configure_logging(
        service_name=settings.service_name,
        log_level=settings.log_level,
        json_format=settings.log_json,
    )

    if settings.merge_mints_doi:
        print("Note: no DOI registrar client is configured here; the merged work gets no DOI.")

    session_factory = init_db(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        echo=settings.db_echo,
    )
    merge = MergeCollection(session_factory, build_index_updater(settings))

    try:
        outcome = await merge.call(collection_id, force=force)
    except CollectionNotFoundError as e:
        print(f"Error: {e}")
        return 2
    finally:
        await close_db()

    print(outcome.to_schema().model_dump_json(indent=2))
    return 0 if outcome.successful else 1


def main() -> None:
    args = parse_args()
    sys.exit(asyncio.run(merge_collection(args.collection_id, args.force)))


if __name__ == "__main__":
    main()
