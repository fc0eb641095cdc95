#!/usr/bin/env python3
"""
Catalog Image Processor CLI

Reads records from the catalog → Downloads each image → Resizes → Saves as JPEG
Work fans out over a fixed number of worker threads.
"""

import sys
import argparse
from typing import List, Optional

from pydantic import ValidationError

from .core import CatalogImagesError, PipelineConfig, get_logger, set_debug_logging
from .core.factories import ProcessingPipelineFactory
from .core.models import DEFAULT_CATALOG_URI


def add_process_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the processing options on `parser`."""
    defaults = PipelineConfig.model_fields

    parser.add_argument(
        "--catalog-uri",
        default=None,
        help=f"MongoDB connection string (default: $CATALOG_URI or {DEFAULT_CATALOG_URI})",
    )
    parser.add_argument(
        "--database", default=defaults["catalog_database"].default, help="Catalog database name"
    )
    parser.add_argument(
        "--collection",
        default=defaults["catalog_collection"].default,
        help="Catalog collection name",
    )
    parser.add_argument(
        "--id-field",
        default=defaults["identifier_field"].default,
        help="Document field used as the output filename stem",
    )
    parser.add_argument(
        "--image-field",
        default=defaults["image_field"].default,
        help="Document field holding the image URL",
    )
    parser.add_argument(
        "--output-dir",
        default=str(defaults["output_dir"].default),
        help="Directory receiving <identifier>.jpg files",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=defaults["concurrency"].default,
        help="Maximum number of images processed at once",
    )
    parser.add_argument(
        "--width", type=int, default=defaults["target_width"].default, help="Target width"
    )
    parser.add_argument(
        "--height", type=int, default=defaults["target_height"].default, help="Target height"
    )
    parser.add_argument(
        "--quality",
        type=int,
        default=defaults["jpeg_quality"].default,
        help="JPEG quality (1-100)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=defaults["download_timeout"].default,
        help="Per-download timeout in seconds; 0 disables it",
    )
    parser.add_argument(
        "--fail-on-error",
        action="store_true",
        help="Exit with status 1 if any image failed",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments for the catalog image processor.

    Args:
        argv: Argument list; defaults to `sys.argv[1:]`.

    Returns:
        An `argparse.Namespace` object containing the parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Download, resize and save every image referenced by the catalog"
    )
    add_process_arguments(parser)
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    """Translate parsed arguments into a validated `PipelineConfig`."""
    options = dict(
        concurrency=args.concurrency,
        target_width=args.width,
        target_height=args.height,
        jpeg_quality=args.quality,
        output_dir=args.output_dir,
        catalog_database=args.database,
        catalog_collection=args.collection,
        identifier_field=args.id_field,
        image_field=args.image_field,
        download_timeout=args.timeout,
        debug=args.debug,
        fail_on_error=args.fail_on_error,
    )
    if args.catalog_uri:
        options["catalog_uri"] = args.catalog_uri
    return PipelineConfig(**options)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the catalog image processing script.

    Parses arguments, builds the configuration and pipeline, and runs it.
    Exits with status 1 on invalid configuration, a fatal catalog failure,
    or (with --fail-on-error) any failed image.
    """
    logger = get_logger("catalog-images.processor")
    try:
        args = parse_args(argv)

        try:
            config = build_config(args)
        except ValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            sys.exit(1)

        if config.debug:
            set_debug_logging("catalog-images.processor", "catalog-images.pipeline")

        logger.info("Starting catalog image processor")
        pipeline = ProcessingPipelineFactory.create_pipeline(config)
        summary = pipeline.process_all()

        if summary.aborted:
            sys.exit(1)
        if config.fail_on_error and summary.failed > 0:
            logger.warning(f"{summary.failed} image(s) failed and --fail-on-error is set")
            sys.exit(1)

    except KeyboardInterrupt:
        logger.warning("Processing interrupted by user.")
    except CatalogImagesError as e:
        logger.error(f"Processing failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Processing failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
