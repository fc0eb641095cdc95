"""Main module for the catalog images CLI."""

import sys
import argparse
from typing import List, Optional

from . import __version__
from .process_images import add_process_arguments
from .process_images import main as process_images_main


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="catalog-images",
        description="Catalog Images - fetch, resize and store every image a catalog references",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process the default catalog (mongodb://localhost:27017, podgo.podcasts) into ./img
  catalog-images process

  # Custom catalog, 20 concurrent downloads, 400x400 output
  catalog-images process --catalog-uri mongodb://db:27017 --database media \\
                         --collection shows --concurrency 20 --width 400 --height 400

  # Show version
  catalog-images version
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    process_parser: argparse.ArgumentParser = subparsers.add_parser(
        "process", help="Download, resize and save the catalog's images"
    )
    add_process_arguments(process_parser)

    subparsers.add_parser("version", help="Show version information")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the unified command-line interface (CLI) of Catalog Images.

    The "process" command validates its options here and hands the same
    argument list to `process_images.main`, which stays usable as a
    standalone script.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.command == "process":
        process_images_main(argv[argv.index("process") + 1:])

    elif args.command == "version":
        print("Catalog Images CLI")
        print(f"Version {__version__}")
        print("Bounded-concurrency image fetch, resize and store")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
