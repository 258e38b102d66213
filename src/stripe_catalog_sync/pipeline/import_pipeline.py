"""
Import pipeline: catalog table -> Stripe

States: Start -> ReadTable -> ValidateStructure -> PerRow{Validate,
CheckReconciled, PublishImage, CreateProduct, CreatePrice, WriteBackIds} ->
Finalizing -> Done.

Rows are processed strictly in file order. Rows failing local validation and
rows already holding both Stripe ids are skipped with a warning; any image or
Stripe failure aborts the whole run.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from tqdm import tqdm

from ..assets import ImageStore
from ..client import StripeClient
from ..errors import ConfigError, SyncError, ValidationError
from ..ledger import ReconciliationLedger
from ..models import CatalogRecord
from ..tabular import CatalogTable
from ..validator import is_blank_row, validate_row
from .report import Outcome, RunReport

logger = logging.getLogger(__name__)


class ImportState(str, Enum):
    START = "Start"
    READ_TABLE = "ReadTable"
    VALIDATE_STRUCTURE = "ValidateStructure"
    VALIDATE = "Validate"
    CHECK_RECONCILED = "CheckReconciled"
    PUBLISH_IMAGE = "PublishImage"
    CREATE_PRODUCT = "CreateProduct"
    CREATE_PRICE = "CreatePrice"
    WRITE_BACK_IDS = "WriteBackIds"
    FINALIZING = "Finalizing"
    DONE = "Done"


class ImportPipeline:
    """Creates a Stripe product + price for every unreconciled catalog row"""

    def __init__(self, client: StripeClient, images: ImageStore, show_progress: bool = False):
        self.client = client
        self.images = images
        self.show_progress = show_progress
        self.state = ImportState.START

    def _enter(self, state: ImportState) -> None:
        self.state = state
        logger.debug(f"Import state: {state.value}")

    def run(
        self,
        input_path: Path,
        output_path: Optional[Path] = None,
        dry_run: bool = False,
    ) -> RunReport:
        """
        Import every row of the table at input_path

        The updated table is written once, to output_path (defaults to
        overwriting input_path). Nothing is uploaded, created or written in
        dry run.
        """
        self._enter(ImportState.START)
        input_path = Path(input_path)
        output_path = Path(output_path) if output_path else input_path
        report = RunReport("import", dry_run=dry_run, output_path=output_path)

        logger.info(f"Input file: {input_path}")
        logger.info(f"Output file: {output_path}")
        if dry_run:
            logger.info("DRY RUN MODE: No changes will be made to Stripe or the table")

        if not input_path.is_file():
            raise ConfigError(f"Input file not found: {input_path}")

        self._enter(ImportState.READ_TABLE)
        table = CatalogTable.load(input_path)

        self._enter(ImportState.VALIDATE_STRUCTURE)
        table.validate_structure()
        ledger = ReconciliationLedger(table)
        ledger.ensure_columns()

        logger.info(f"Processing {len(table)} rows...")
        rows = tqdm(
            table.rows(),
            total=len(table),
            desc="Importing",
            unit="row",
            disable=not self.show_progress,
        )
        try:
            for row_index, row_number, row in rows:
                self._process_row(row_index, row_number, row, ledger, report)
        except Exception:
            if not dry_run and ledger.written:
                self._persist_partial(table, output_path, ledger)
            raise
        finally:
            rows.close()

        self._enter(ImportState.FINALIZING)
        if dry_run:
            logger.info(f"DRY RUN: Would save updated table to {output_path}")
        else:
            table.save(output_path)
            logger.info(f"Table updated successfully: {output_path}")

        self._enter(ImportState.DONE)
        return report

    def _process_row(
        self,
        row_index: int,
        row_number: int,
        row: Dict[str, str],
        ledger: ReconciliationLedger,
        report: RunReport,
    ) -> None:
        if is_blank_row(row):
            logger.debug(f"Row {row_number} is empty, ignoring")
            return

        self._enter(ImportState.VALIDATE)
        try:
            record = validate_row(row, row_number, self.images.image_dir)
        except ValidationError as e:
            logger.warning(f"Skipping {e}")
            report.add(Outcome.SKIPPED, code=e.code or "", row_number=row_number, reason=e.message)
            return

        self._enter(ImportState.CHECK_RECONCILED)
        if ledger.is_reconciled(record):
            logger.warning(f"Product {record.code} already has Stripe IDs, skipping (row {row_number})")
            report.add(
                Outcome.SKIPPED,
                code=record.code,
                row_number=row_number,
                reason="already reconciled",
                product_id=record.stripe_product_id,
                price_id=record.stripe_price_id,
            )
            return

        logger.info(f"Processing product: {record.code} - {record.name}")
        if report.dry_run:
            self._log_planned(record)
            report.add(Outcome.WOULD_CREATE, code=record.code, row_number=row_number)
            return

        try:
            product_id, price_id = self._create_remote(record)
        except SyncError as e:
            if e.row_number is None:
                e.row_number = row_number
            e.code = e.code or record.code
            raise

        self._enter(ImportState.WRITE_BACK_IDS)
        ledger.record_ids(row_index, product_id, price_id)
        report.add(
            Outcome.CREATED,
            code=record.code,
            row_number=row_number,
            product_id=product_id,
            price_id=price_id,
        )

    def _create_remote(self, record: CatalogRecord):
        self._enter(ImportState.PUBLISH_IMAGE)
        image_url = self.images.publish_image(self.images.image_dir / record.image)

        self._enter(ImportState.CREATE_PRODUCT)
        product = self.client.create_product(record.name, record.description, record.code, image_url)
        logger.info(f"Created Stripe product: {product.id}")

        self._enter(ImportState.CREATE_PRICE)
        price = self.client.create_price(product.id, record.unit_amount, nickname=record.code)
        logger.info(f"Created Stripe price: {price.id} ({price.unit_amount} {price.currency})")

        return product.id, price.id

    def _log_planned(self, record: CatalogRecord) -> None:
        image_path = self.images.image_dir / record.image
        logger.info(f"DRY RUN: Would upload image to Stripe and create file link: {image_path}")
        logger.info(f"DRY RUN: Would create Stripe product for {record.code} with public image URL")
        logger.info(
            f"DRY RUN: Would create Stripe price for {record.code} with nickname {record.code} "
            f"({record.price} {self.client.config.currency.upper()} = {record.unit_amount} minor units)"
        )

    def _persist_partial(self, table: CatalogTable, output_path: Path, ledger: ReconciliationLedger) -> None:
        """Keep the ids of rows created before an abort so a rerun skips them"""
        logger.error(f"Run aborted; saving {ledger.written} written-back rows to {output_path}")
        try:
            table.save(output_path)
        except Exception as save_error:
            logger.error(f"Could not save partial results to {output_path}: {save_error}")
