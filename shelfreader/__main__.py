"""
Command line entry point.

    python -m shelfreader scan shelf.jpg
    python -m shelfreader search "The Left Hand of Darkness"
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from shelfreader.config import Settings
from shelfreader.container import ServiceContainer
from shelfreader.exceptions import ShelfReaderError, ImageTooLargeError


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)


async def run_scan(container: ServiceContainer, image_path: Path) -> int:
    with image_path.open("rb") as stream:
        try:
            result = await container.pipeline.process(stream)
        except ImageTooLargeError as e:
            logger.error(e.message)
            return 2

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


async def run_search(container: ServiceContainer, query: str) -> int:
    result = await container.lookup_client.lookup(query)
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0 if result.is_success else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shelfreader",
        description="Read book titles and authors from a bookshelf photo"
    )
    parser.add_argument("--log-level", default=None, help="Override SHELFREADER_LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    scan = commands.add_parser("scan", help="Scan a bookshelf image")
    scan.add_argument("image", type=Path, help="Path to a JPEG or PNG image")

    search = commands.add_parser("search", help="Look up books by title")
    search.add_argument("query", help="Title to search for")

    return parser


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
        configure_logging((args.log_level or settings.log_level).upper())
        container = ServiceContainer(settings)
    except (ShelfReaderError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        if args.command == "scan":
            if not args.image.is_file():
                print(f"Image not found: {args.image}", file=sys.stderr)
                return 2
            return asyncio.run(run_scan(container, args.image))
        return asyncio.run(run_search(container, args.query))
    finally:
        container.close()


if __name__ == "__main__":
    sys.exit(main())
