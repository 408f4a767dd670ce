"""
Run script for the annotation API.
Starts the Quart app under hypercorn, or initializes the database.
Can be run from project root or src directory.
"""
import sys
import asyncio
import argparse
import logging
from pathlib import Path

# This script is at: <project_root>/src/api/run_api.py
script_path = Path(__file__).resolve()
src_path = script_path.parent.parent  # src/
project_root = src_path.parent  # project root

# Add src to path for imports when run as a plain script
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from dotenv import load_dotenv

# Load environment variables from project root
load_dotenv(project_root / '.env')

from services.config import load_config
from services.logging import setup_logging

logger = logging.getLogger(__name__)


def init_database():
    """Initialize the database tables."""
    from api.app import get_services

    db = get_services().database

    async def init():
        await db.init_tables()
        logger.info(f"Database initialized at: {Path(db.path).resolve()}")

    asyncio.run(init())


def run_server(host: str = '0.0.0.0', port: int = 3001, debug: bool = False):
    """Run the API server under hypercorn."""
    from hypercorn.config import Config
    from hypercorn.asyncio import serve
    from api.app import app

    logger.info(f"Starting annotation API on http://{host}:{port}")

    config = Config()
    config.bind = [f"{host}:{port}"]
    config.use_reloader = debug
    config.accesslog = '-'
    config.errorlog = '-'

    asyncio.run(serve(app, config))


def main():
    parser = argparse.ArgumentParser(description='Article annotation API')
    parser.add_argument('command', nargs='?', default='run',
                        choices=['run', 'init-db'],
                        help='Command to execute')
    parser.add_argument('--host', default='0.0.0.0',
                        help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=3001,
                        help='Port to bind to (default: 3001)')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug mode')

    args = parser.parse_args()

    setup_logging(logging.DEBUG if args.debug else load_config().LOG_LEVEL)
    logger.info(f"Project root: {project_root}")

    if args.command == 'init-db':
        init_database()
    else:
        run_server(host=args.host, port=args.port, debug=args.debug)


if __name__ == '__main__':
    main()
