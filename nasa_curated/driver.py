#!/usr/bin/env python3
"""
Command line driver for the NASA curated image cache.

:copyright: (c) 2025 by Meir Miyara.
:license: MPL-2.0, see LICENSE for more details.
"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from nasa_curated.client import NASAImageClient
from nasa_curated.config import Config
from nasa_curated.curator import CuratedImageCache
from nasa_curated.store import LocalStore
from nasa_curated.topics import today_topic

_LOG = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure root logging for command line use."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s | %(levelname)8s | %(name)s | %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nasa-curated",
        description="Show today's curated NASA images, cached once per day.",
    )
    parser.add_argument("--config", help="path to a JSON configuration file")
    parser.add_argument("--base-dir", help="directory for cached images and metadata")
    parser.add_argument("--topic", action="store_true", help="print today's topic and exit")
    parser.add_argument("--status", action="store_true", help="print cache status")
    parser.add_argument("--clear", action="store_true", help="remove cached images and metadata")
    parser.add_argument("--apod", action="store_true", help="also fetch the Astronomy Picture of the Day")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser


def _emit(payload) -> None:
    print(json.dumps(payload, indent=2))


async def run(args: argparse.Namespace) -> int:
    """Run the command described by ``args``."""
    overrides = {"base_dir": args.base_dir} if args.base_dir else None
    config = Config(args.config, overrides)

    if args.topic:
        print(today_topic(topics=config.topics))
        return 0

    if args.clear:
        removed = LocalStore(config.base_dir, image_extension=config.image_extension).clear()
        _emit({"cleared": removed})
        return 0

    async with NASAImageClient(config) as client:
        cache = CuratedImageCache(config, client)

        if args.status:
            _emit(cache.status())
            return 0

        images = await cache.get_curated_images()
        output = {
            "topic": cache.today_topic(),
            "images": [image.to_dict() for image in images],
        }

        if args.apod:
            apod = await client.fetch_apod()
            output["apod"] = apod.to_dict() if apod else None

        _emit(output)
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)
    _LOG.debug("Starting NASA curated image cache")

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        _LOG.info("Stopped by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
