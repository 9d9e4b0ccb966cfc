"""Command-line entry point: ``python -m reva`` or ``reva``."""

import argparse
import logging
import sys

from dotenv import load_dotenv

from . import Reva
from .config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("reva")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="reva", description="Run the Reva chat backend.")
    parser.add_argument("--host", help="interface to bind (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="port to listen on (default: PORT or 3001)")
    parser.add_argument("--debug", action="store_true", help="run Flask in debug mode")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    if not settings.api_key:
        logger.error("OPENROUTER_API_KEY is not set")
        return 1

    app = Reva(settings=settings)
    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("Reva listening on %s:%d", host, port)
    app.run(host=host, port=port, debug=args.debug)
    return 0


if __name__ == "__main__":
    sys.exit(main())
