"""
Command-line interface for typebrowse.
"""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn

from . import __version__
from .app import create_app
from .config import Settings

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def parse_args(argv, settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='typebrowse', description='Serve static files over HTTP.')
    parser.add_argument('path', nargs='?', type=Path, default=settings.root,
                        help='The file or directory to serve.')
    parser.add_argument('--port', type=int, default=settings.port, help='The port to serve on.')
    parser.add_argument('--host', default=settings.host, help='The host to serve on.')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging.')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    settings = Settings.from_env()
    args = parse_args(argv, settings)
    setup_logging(args.verbose)

    settings.root = args.path
    settings.host = args.host
    settings.port = args.port

    try:
        app = create_app(settings)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1

    logger.info(f"serving {settings.root} at {settings.host}:{settings.port}...")
    uvicorn.run(app, host=settings.host, port=settings.port)
    return 0


if __name__ == '__main__':
    sys.exit(main())
