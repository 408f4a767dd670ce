import argparse
import asyncio
import json
import logging
import time

from services.config import load_config
from services.container import build_services
from services.logging import setup_logging


async def main(query: str | None, page: int, limit: int | None) -> None:
    start_time = time.perf_counter()
    config = load_config()
    setup_logging(config.LOG_LEVEL)
    logger = logging.getLogger(__name__)

    # ----------------------------
    # Initialize shared services
    # ----------------------------
    services = build_services(config)
    await services.database.init_tables()

    logger.info(f"Fetching {'search' if query else 'recent'} page {page}")

    result = await services.aggregator.fetch_page(query, page=page, limit=limit)
    print(json.dumps(result.to_dict(), indent=2))

    end_time = time.perf_counter()
    logger.info(f"Total time: {end_time - start_time}")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Print one enriched result page as JSON')
    parser.add_argument('query', nargs='?', default=None,
                        help='Search terms; omit to browse recent stories')
    parser.add_argument('--page', type=int, default=0)
    parser.add_argument('--limit', type=int, default=None)
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    asyncio.run(main(args.query, args.page, args.limit))
