#!/usr/bin/env python3
"""
M4A Tag Dump

Reads iTunes-style tags from local files, URLs or s3:// objects and prints
them as JSON. Only the atoms leading to the tags are fetched, so remote
files are read with a handful of small range requests.
"""

import argparse
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from tqdm import tqdm

from .config import SUPPORTED_FORMATS, Config, configure_logging
from .errors import ConfigError, TagReaderError
from .reader import read_tags

logger = logging.getLogger(__name__)


class TagDumper:
    """Reads tags for many locations in parallel and collects them."""

    def __init__(self, config: Config, tags: list[str] | None = None, include_pictures: bool = False) -> None:
        self._config = config
        self._tags = tags
        self._include_pictures = include_pictures

    def expand_locations(self, locations: list[str]) -> list[str]:
        """Replace local directories with the media files below them."""
        expanded = []
        for location in locations:
            path = Path(location)
            if "://" not in location and path.is_dir():
                expanded.extend(
                    str(p) for p in sorted(path.rglob("*")) if p.suffix.lower() in SUPPORTED_FORMATS
                )
            else:
                expanded.append(location)
        return expanded

    def process_location(self, location: str) -> dict:
        """Read one location. Errors are reported in the returned entry."""
        try:
            result = read_tags(location, tags=self._tags, config=self._config)
        except TagReaderError as e:
            logger.warning(f"Could not read tags from {location}: {e}")
            return {"location": location, "error": {"type": e.type, "message": e.message}}

        entry = {"location": location}
        entry.update(result.to_dict(include_pictures=self._include_pictures))
        return entry

    def run(self, locations: list[str], show_progress: bool = True) -> list[dict]:
        """Read all locations, keeping the input order in the output."""
        results: dict[str, dict] = {}

        with ThreadPoolExecutor(max_workers=self._config.max_workers) as executor:
            futures = {executor.submit(self.process_location, loc): loc for loc in locations}

            for future in tqdm(
                as_completed(futures),
                total=len(locations),
                desc="Reading",
                unit="file",
                disable=not show_progress,
            ):
                location = futures[future]
                try:
                    results[location] = future.result()
                except Exception as e:
                    logger.error(f"Error processing {location}: {e}")
                    results[location] = {"location": location, "error": {"type": "error", "message": str(e)}}

        return [results[loc] for loc in locations]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Print iTunes-style tags of M4A files as JSON"
    )
    parser.add_argument(
        "locations",
        nargs="+",
        help="Files, directories, http(s):// URLs or s3://bucket/key locations",
    )
    parser.add_argument(
        "--tags",
        help="Comma separated fields to keep (e.g. title,artist,trkn)",
    )
    parser.add_argument(
        "--include-pictures",
        action="store_true",
        help="Include artwork bytes (base64) in the output",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write JSON to this file instead of stdout",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of parallel workers (default: MP4TAGS_WORKERS or 4)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        help="Load environment variables from this .env file",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    configure_logging(verbose=args.verbose)

    try:
        config = Config.from_environment(args.env_file)
        if args.workers is not None:
            config.max_workers = args.workers
        config.validate()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    tags = [t.strip() for t in args.tags.split(",") if t.strip()] if args.tags else None
    dumper = TagDumper(config, tags=tags, include_pictures=args.include_pictures)

    locations = dumper.expand_locations(args.locations)
    if not locations:
        print("No media files found.", file=sys.stderr)
        return 1

    results = dumper.run(locations, show_progress=len(locations) > 1)

    json_str = json.dumps(results if len(results) > 1 else results[0], indent=2, ensure_ascii=False)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(json_str)
        print(f"Tags saved to: {args.output}", file=sys.stderr)
    else:
        print(json_str)

    return 1 if any("error" in r for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
