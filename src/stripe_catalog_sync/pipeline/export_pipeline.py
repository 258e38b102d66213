"""
Export pipeline: Stripe -> catalog table

States: Start -> ListingProducts -> PerPage{FetchPrices, DownloadImage,
AppendRow} -> Finalizing -> Done. Products are processed one at a time in
Stripe's enumeration order until the record limit is reached.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from ..assets import ImageStore
from ..client import MAX_PAGE_SIZE, StripeClient
from ..config import PathConfig
from ..errors import ConfigError
from ..models import CatalogRecord, RemoteProduct
from ..tabular import write_catalog
from .report import Outcome, RunReport

logger = logging.getLogger(__name__)


class ExportState(str, Enum):
    START = "Start"
    LISTING_PRODUCTS = "ListingProducts"
    FETCH_PRICES = "FetchPrices"
    DOWNLOAD_IMAGE = "DownloadImage"
    APPEND_ROW = "AppendRow"
    FINALIZING = "Finalizing"
    DONE = "Done"


class ExportPipeline:
    """Exports active Stripe products, their first price and first image"""

    def __init__(self, client: StripeClient, images: ImageStore, paths: PathConfig):
        self.client = client
        self.images = images
        self.paths = paths
        self.state = ExportState.START

    def _enter(self, state: ExportState) -> None:
        self.state = state
        logger.debug(f"Export state: {state.value}")

    def run(
        self,
        limit: int = MAX_PAGE_SIZE,
        dry_run: bool = False,
        output_path: Optional[Path] = None,
    ) -> RunReport:
        """
        Export up to `limit` active products

        Returns the run report; report.records holds the exported rows and
        report.output_path the table that was (or, in dry run, would be) written.
        """
        self._enter(ExportState.START)
        if limit <= 0:
            raise ConfigError(f"Export limit must be positive, got {limit}")

        report = RunReport("export", dry_run=dry_run)
        if dry_run:
            logger.info("DRY RUN MODE: No images will be downloaded and no table will be created")

        logger.info(f"Fetching products from Stripe (limit: {limit})...")
        page_size = min(limit, MAX_PAGE_SIZE)
        cursor: Optional[str] = None
        has_more = True

        while has_more and len(report.records) < limit:
            self._enter(ExportState.LISTING_PRODUCTS)
            page = self.client.list_products(page_size, cursor)
            report.pages_fetched += 1
            logger.info(
                f"Fetched {len(page.items)} products "
                f"(page {report.pages_fetched}, total so far: {len(report.records)})"
            )

            for product in page.items:
                if len(report.records) >= limit:
                    break
                report.records.append(self._export_product(product, report))

            has_more = page.has_more and bool(page.items)
            cursor = page.next_cursor

            if len(report.records) >= limit:
                logger.info(f"Reached product limit of {limit}")

        self._enter(ExportState.FINALIZING)
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")
        path = Path(output_path) if output_path else self.paths.get_export_path(timestamp)
        report.output_path = path

        if dry_run:
            logger.info(f"DRY RUN: Would save {len(report.records)} products to {path}")
        else:
            write_catalog(path, report.records)
            logger.info(f"Catalog table created successfully: {path}")

        self._enter(ExportState.DONE)
        return report

    def _export_product(self, product: RemoteProduct, report: RunReport) -> CatalogRecord:
        logger.info(f"Processing product: {product.id} - {product.name}")
        code = product.code

        self._enter(ExportState.FETCH_PRICES)
        prices = self.client.list_active_prices(product.id)
        price = prices[0] if prices else None
        if price is None:
            logger.warning(f"Product {product.id} has no active price; price columns left empty")

        image_filename = ""
        if product.first_image:
            self._enter(ExportState.DOWNLOAD_IMAGE)
            image_filename = self.images.download_image(product.first_image, code, dry_run=report.dry_run)
        else:
            logger.info(f"Product {product.id} has no images")

        self._enter(ExportState.APPEND_ROW)
        record = CatalogRecord.from_remote(product, price, image_filename)
        report.add(
            Outcome.WOULD_EXPORT if report.dry_run else Outcome.EXPORTED,
            code=code,
            product_id=record.stripe_product_id,
            price_id=record.stripe_price_id,
        )
        return record
