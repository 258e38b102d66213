"""
Data models for Stripe catalog entities and tabular catalog records
"""
from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Any, Dict, List, Optional

# Column names of the tabular catalog, in export order
CODE = "CODE"
NAME = "NAME"
DESCRIPTION = "DESCRIPTION"
PRICE = "PRICE"
IMAGE = "IMAGE"
STRIPE_PRODUCT_ID = "STRIPE_PRODUCT_ID"
STRIPE_PRICE_ID = "STRIPE_PRICE_ID"

REQUIRED_COLUMNS = [CODE, NAME, DESCRIPTION, PRICE, IMAGE]
LEDGER_COLUMNS = [STRIPE_PRODUCT_ID, STRIPE_PRICE_ID]
EXPORT_COLUMNS = REQUIRED_COLUMNS + LEDGER_COLUMNS

# Metadata key holding the external product code on Stripe products
PRODUCT_CODE_KEY = "product_code"

CENTS = Decimal("0.01")


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (19.99) to Stripe's smallest unit (1999)"""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_EVEN))


def format_major_units(unit_amount: Optional[int]) -> str:
    """Render a minor-unit amount as a two-decimal string, empty when unknown"""
    if unit_amount is None:
        return ""
    return str((Decimal(unit_amount) / 100).quantize(CENTS))


@dataclass
class RemotePrice:
    """Represents a Stripe price"""
    id: str
    product_id: str
    unit_amount: Optional[int]
    currency: str
    nickname: Optional[str] = None
    active: bool = True

    @classmethod
    def from_stripe_api(cls, data: Dict[str, Any]) -> "RemotePrice":
        """Create price from Stripe API response"""
        product = data.get("product", "")
        if isinstance(product, dict):
            product = product.get("id", "")
        return cls(
            id=data["id"],
            product_id=product,
            unit_amount=data.get("unit_amount"),
            currency=data.get("currency", ""),
            nickname=data.get("nickname"),
            active=data.get("active", True),
        )

    @property
    def display_amount(self) -> str:
        return format_major_units(self.unit_amount)


@dataclass
class RemoteProduct:
    """Represents a Stripe product"""
    id: str
    name: str
    description: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    images: List[str] = field(default_factory=list)
    active: bool = True

    @classmethod
    def from_stripe_api(cls, data: Dict[str, Any]) -> "RemoteProduct":
        """Create product from Stripe API response"""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description"),
            metadata=dict(data.get("metadata") or {}),
            images=list(data.get("images") or []),
            active=data.get("active", True),
        )

    @property
    def code(self) -> str:
        return self.metadata.get(PRODUCT_CODE_KEY, "")

    @property
    def first_image(self) -> Optional[str]:
        return self.images[0] if self.images else None


@dataclass
class ProductPage:
    """One page of a cursor-paginated product listing"""
    items: List[RemoteProduct]
    next_cursor: Optional[str]
    has_more: bool


@dataclass
class CatalogRecord:
    """One row of the tabular catalog"""
    code: str
    name: str
    description: str = ""
    price: Optional[Decimal] = None
    image: str = ""
    stripe_product_id: str = ""
    stripe_price_id: str = ""
    row_number: Optional[int] = None

    @classmethod
    def from_remote(
        cls,
        product: RemoteProduct,
        price: Optional[RemotePrice],
        image_filename: str = "",
    ) -> "CatalogRecord":
        """Create record from a Stripe product and its first active price"""
        amount = None
        if price is not None and price.unit_amount is not None:
            amount = (Decimal(price.unit_amount) / 100).quantize(CENTS)
        return cls(
            code=product.code,
            name=product.name,
            description=product.description or "",
            price=amount,
            image=image_filename,
            stripe_product_id=product.id,
            stripe_price_id=price.id if price is not None else "",
        )

    @property
    def is_reconciled(self) -> bool:
        return bool(self.stripe_product_id and self.stripe_price_id)

    @property
    def unit_amount(self) -> Optional[int]:
        if self.price is None:
            return None
        return to_minor_units(self.price)

    def to_row(self) -> Dict[str, str]:
        """Render the record with the export column names"""
        return {
            CODE: self.code,
            NAME: self.name,
            DESCRIPTION: self.description,
            PRICE: "" if self.price is None else str(self.price.quantize(CENTS)),
            IMAGE: self.image,
            STRIPE_PRODUCT_ID: self.stripe_product_id,
            STRIPE_PRICE_ID: self.stripe_price_id,
        }
