#!/usr/bin/env python3
"""
Stripe Catalog Sync - Main Entry Point

Keeps a catalog spreadsheet and the Stripe product catalog in sync.

Usage:
    stripe-catalog-sync export [--limit N] [--output PATH] [--dry-run]
    stripe-catalog-sync import --file products.xlsx [--output PATH] [--dry-run]

Environment variables (or a .env file):
    STRIPE_API_KEY      - Your Stripe API key (required)
    STRIPE_API_VERSION  - Stripe API version (optional)
"""

import argparse
import sys
from typing import List, Optional

from .assets import ImageStore
from .client import StripeClient
from .config import PathConfig, SyncConfig
from .errors import SyncError
from .logger import get_run_logger
from .pipeline import ExportPipeline, ImportPipeline


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog="stripe-catalog-sync",
        description="Sync a product catalog spreadsheet with Stripe",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stripe-catalog-sync export                          # Download up to 100 products
  stripe-catalog-sync export --limit 500              # Download up to 500 products
  stripe-catalog-sync export --dry-run                # Show what would be downloaded
  stripe-catalog-sync import --file products.xlsx     # Create products, update the file in place
  stripe-catalog-sync import -f products.xlsx -o updated.xlsx
  stripe-catalog-sync import -f products.xlsx --dry-run
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Set the logging level (default: LOG_LEVEL or INFO)'
    )

    parser.add_argument(
        '--image-dir',
        help='Directory holding product images (default: ./productImages)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    export_parser = subparsers.add_parser('export', help='Download Stripe products into a new spreadsheet')
    export_parser.add_argument(
        '-l', '--limit',
        type=int,
        default=100,
        help='Maximum number of products to fetch (default: 100)'
    )
    export_parser.add_argument(
        '-o', '--output',
        help='Path of the spreadsheet to create (default: downloads/import_<timestamp>.xlsx)'
    )
    export_parser.add_argument(
        '-d', '--dry-run',
        action='store_true',
        help='Perform a dry run without downloading images or creating the spreadsheet'
    )

    import_parser = subparsers.add_parser('import', help='Create Stripe products from a spreadsheet')
    import_parser.add_argument(
        '-f', '--file',
        required=True,
        help='Path to the spreadsheet containing product data'
    )
    import_parser.add_argument(
        '-o', '--output',
        help='Path to save the updated spreadsheet (defaults to overwriting the input file)'
    )
    import_parser.add_argument(
        '-d', '--dry-run',
        action='store_true',
        help='Perform a dry run without making changes to Stripe or the spreadsheet'
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function"""
    args = parse_arguments(argv)

    config = SyncConfig.from_env()
    paths = PathConfig(image_dir_name=args.image_dir) if args.image_dir else PathConfig()
    # Dry runs leave nothing on disk, log file included
    logs_dir = None if args.dry_run else paths.logs_dir
    logger = get_run_logger(args.command, logs_dir, args.log_level or config.log_level)

    try:
        config.require_credentials()

        client = StripeClient(config)
        images = ImageStore(client, paths.image_dir, timeout=config.request_timeout)

        if args.command == 'export':
            logger.info("Starting Stripe product export")
            report = ExportPipeline(client, images, paths).run(
                limit=args.limit,
                dry_run=args.dry_run,
                output_path=args.output,
            )
        else:
            logger.info("Starting Stripe product import")
            report = ImportPipeline(client, images, show_progress=True).run(
                args.file,
                output_path=args.output,
                dry_run=args.dry_run,
            )

    except SyncError as e:
        logger.error(f"Error [{e.kind.value}]: {e}")
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Unhandled error: {e}", exc_info=True)
        return 1

    report.log_summary(logger)
    logger.info("Process completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
