"""
Reconciliation ledger

The STRIPE_PRODUCT_ID / STRIPE_PRICE_ID columns embedded in the catalog table
record which rows already exist in Stripe. A row carrying both ids is
reconciled and is never created again; its ids are never overwritten.
"""
import logging

from .models import LEDGER_COLUMNS, STRIPE_PRICE_ID, STRIPE_PRODUCT_ID, CatalogRecord
from .tabular import CatalogTable

logger = logging.getLogger(__name__)


class ReconciliationLedger:
    """Reads and writes remote ids on a CatalogTable"""

    def __init__(self, table: CatalogTable):
        self.table = table
        self.written = 0

    def ensure_columns(self) -> None:
        """Append missing id columns after the existing ones"""
        for column in LEDGER_COLUMNS:
            if column not in self.table.columns:
                logger.info(f"Adding column {column}")
                self.table.add_column(column)

    @staticmethod
    def is_reconciled(record: CatalogRecord) -> bool:
        return record.is_reconciled

    def record_ids(self, row_index: int, product_id: str, price_id: str) -> None:
        """Attach the created Stripe ids to a row"""
        existing_product = self.table.get_value(row_index, STRIPE_PRODUCT_ID).strip()
        existing_price = self.table.get_value(row_index, STRIPE_PRICE_ID).strip()
        if existing_product and existing_price:
            raise ValueError(
                f"Row {row_index} already holds Stripe ids "
                f"{existing_product}/{existing_price}; refusing to overwrite"
            )
        self.table.set_value(row_index, STRIPE_PRODUCT_ID, product_id)
        self.table.set_value(row_index, STRIPE_PRICE_ID, price_id)
        self.written += 1
