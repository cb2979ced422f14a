"""
Newsletter Backend: Command Line
================================

Usage:
    python -m newsletter serve
    python -m newsletter create-user USERNAME

`serve` runs the API under uvicorn on APP_HOST:APP_PORT.
`create-user` prompts for a password and stores a publisher account that can
authenticate on POST /newsletters and /login.
"""

import argparse
import asyncio
import getpass
import logging
import sys

import uvicorn

from newsletter.config import settings
from newsletter.database import build_engine, build_session_factory, dispose_engine
from newsletter.exceptions import NewsletterError
from newsletter.main import setup_logging
from newsletter.services.auth_service import auth_service

logger = logging.getLogger("newsletter.cli")


def serve() -> None:
    uvicorn.run(
        "newsletter.main:app",
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level.lower(),
    )


async def create_user(username: str, password: str) -> None:
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    try:
        async with session_factory() as session:
            user = await auth_service.create_user(session, username, password)
            await session.commit()
            logger.info("User '%s' stored with id %s", user.username, user.user_id)
    finally:
        await dispose_engine(engine)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="newsletter", description="Newsletter backend")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("serve", help="Run the HTTP API")

    create = commands.add_parser("create-user", help="Add a publisher account")
    create.add_argument("username")

    args = parser.parse_args(argv)
    setup_logging(settings.log_level)

    if args.command == "serve":
        serve()
        return 0

    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        logger.error("Passwords do not match")
        return 1

    try:
        asyncio.run(create_user(args.username, password))
    except NewsletterError as e:
        logger.error("Could not create user: %s", e.message)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
