"""
Run the hit counter server with uvicorn.

Usage:

    python -m hitcounter --port 8080

then, in another terminal:

    curl -H "X-Auth-Token: $SECRET_TOKEN" "http://localhost:8080/hit?id=home"
    curl "http://localhost:8080/count?id=home"
"""

from __future__ import annotations

import argparse
import logging

import uvicorn

from hitcounter.config import get_settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Hit counter server")
    parser.add_argument(
        "--host",
        default=settings.host,
        help="Bind address (default: %(default)s)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help="Port (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level (default: %(default)s)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable autoreload (dev only)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    logger.info("hit counter server listening on %s:%d", args.host, args.port)
    # uvicorn handles SIGINT/SIGTERM and runs the app lifespan on shutdown.
    uvicorn.run(
        "hitcounter.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=args.reload,
    )
    logger.info("bye")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
