"""Command line entry point: run the pipeline for one video."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import settings
from .core.insights_engine import InsightsEngine
from .models import PipelineMode
from .utils.error_handling import InsightsException
from .utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="youtube-insights",
        description="Extract topics from a YouTube video and match them against its comments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  youtube-insights https://www.youtube.com/watch?v=dQw4w9WgXcQ
  youtube-insights dQw4w9WgXcQ --mode content --log-level DEBUG

Credentials are read from OPENAI_API_KEY and YOUTUBE_API_KEY (or a .env file).
        """
    )
    parser.add_argument("url", help="YouTube video URL or 11-character video id")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in PipelineMode],
        default=PipelineMode.SIMILARITY.value,
        help="similarity: match topics to comments; content: simplified topic summary"
    )
    parser.add_argument("--log-level", default=settings.log_level, help="Log level (default: %(default)s)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, settings.log_dir)

    try:
        memory = asyncio.run(InsightsEngine().run(args.url, PipelineMode(args.mode)))
    except InsightsException as e:
        logger.error(f"Run failed: {e.message}")
        return 1

    print(memory.get("output_path"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
