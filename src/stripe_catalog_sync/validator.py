"""
Record validation for catalog rows read from the table
"""
from decimal import Decimal, InvalidOperation, Overflow
from pathlib import Path
from typing import Dict, Optional

from .errors import ValidationError
from .models import (
    CODE,
    DESCRIPTION,
    IMAGE,
    NAME,
    PRICE,
    STRIPE_PRICE_ID,
    STRIPE_PRODUCT_ID,
    CatalogRecord,
    to_minor_units,
)

# Stripe accepts at most eight digits in unit_amount
MAX_UNIT_AMOUNT = 99_999_999


def is_blank_row(row: Dict[str, str]) -> bool:
    """Wholly empty rows (trailing spreadsheet rows) carry no record"""
    return all(not str(value).strip() for value in row.values())


def parse_price(value: str) -> Decimal:
    """Parse a major-unit price, rejecting anything that is not a finite positive amount"""
    text = str(value).strip()
    if not text:
        raise ValidationError("Price is empty")
    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ValidationError(f"Price is not a number: {text!r}", cause=e)
    if not amount.is_finite():
        raise ValidationError(f"Price is not finite: {text!r}")
    if amount <= 0:
        raise ValidationError(f"Price must be positive: {text!r}")
    try:
        unit_amount = to_minor_units(amount)
    except (InvalidOperation, Overflow) as e:
        raise ValidationError(f"Price out of range: {text!r}", cause=e)
    if unit_amount <= 0:
        raise ValidationError(f"Price must be positive: {text!r}")
    if unit_amount > MAX_UNIT_AMOUNT:
        raise ValidationError(f"Price out of range: {text!r}")
    return amount


def validate_row(row: Dict[str, str], row_number: Optional[int], image_dir: Path) -> CatalogRecord:
    """
    Build a CatalogRecord from one table row or raise ValidationError

    A row is rejected when CODE or NAME is blank, IMAGE is blank, PRICE is not
    a finite positive amount, or the image file is absent from image_dir.
    """
    code = row.get(CODE, "").strip()
    name = row.get(NAME, "").strip()

    if not code:
        raise ValidationError("Product code is empty", row_number=row_number)
    if not name:
        raise ValidationError("Product name is empty", row_number=row_number, code=code)

    image = row.get(IMAGE, "").strip()
    if not image:
        raise ValidationError("No image specified", row_number=row_number, code=code)

    try:
        price = parse_price(row.get(PRICE, ""))
    except ValidationError as e:
        e.row_number = row_number
        e.code = code
        raise

    image_path = Path(image_dir) / image
    if not image_path.is_file():
        raise ValidationError(
            f"Image file not found: {image_path}", row_number=row_number, code=code
        )

    return CatalogRecord(
        code=code,
        name=name,
        description=row.get(DESCRIPTION, "").strip(),
        price=price,
        image=image,
        stripe_product_id=row.get(STRIPE_PRODUCT_ID, "").strip(),
        stripe_price_id=row.get(STRIPE_PRICE_ID, "").strip(),
        row_number=row_number,
    )
