"""
Shared fixtures: an in-memory Stripe stand-in, fake HTTP sessions and
catalog table helpers.
"""
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import pytest

from stripe_catalog_sync.assets import ImageStore
from stripe_catalog_sync.config import PathConfig, SyncConfig
from stripe_catalog_sync.errors import RemoteError
from stripe_catalog_sync.models import (
    EXPORT_COLUMNS,
    PRODUCT_CODE_KEY,
    ProductPage,
    RemotePrice,
    RemoteProduct,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n fake image payload"


class FakeStripeClient:
    """In-memory stand-in for StripeClient with a call log and failure injection"""

    def __init__(
        self,
        products: Optional[List[RemoteProduct]] = None,
        prices: Optional[Dict[str, List[RemotePrice]]] = None,
        fail_on: Optional[Dict[str, int]] = None,
    ):
        self.config = SyncConfig(api_key="sk_test_fake", max_requests_per_second=0)
        self.products = list(products or [])
        self.prices = {key: list(value) for key, value in (prices or {}).items()}
        self.fail_on = fail_on or {}
        self.calls = []

    def _record(self, name: str, *args) -> int:
        self.calls.append((name,) + args)
        number = len(self.calls_to(name))
        if self.fail_on.get(name) == number:
            raise RemoteError(f"{name} failed", status_code=500)
        return number

    def calls_to(self, name: str) -> list:
        return [call for call in self.calls if call[0] == name]

    @property
    def creations(self) -> int:
        return len(self.calls_to("create_product")) + len(self.calls_to("create_price"))

    def list_products(self, page_size: int = 100, cursor: Optional[str] = None) -> ProductPage:
        self._record("list_products", page_size, cursor)
        page_size = max(1, min(page_size, 100))
        start = 0
        if cursor:
            start = [p.id for p in self.products].index(cursor) + 1
        items = self.products[start:start + page_size]
        return ProductPage(
            items=items,
            next_cursor=items[-1].id if items else cursor,
            has_more=start + page_size < len(self.products),
        )

    def list_active_prices(self, product_id: str) -> List[RemotePrice]:
        self._record("list_active_prices", product_id)
        return list(self.prices.get(product_id, []))

    def create_product(self, name, description, code, image_url=None) -> RemoteProduct:
        number = self._record("create_product", name, description, code, image_url)
        product = RemoteProduct(
            id=f"prod_new_{number}",
            name=name,
            description=description,
            metadata={PRODUCT_CODE_KEY: code},
            images=[image_url] if image_url else [],
        )
        self.products.append(product)
        return product

    def create_price(self, product_id, unit_amount, nickname, currency=None) -> RemotePrice:
        number = self._record("create_price", product_id, unit_amount, nickname)
        price = RemotePrice(
            id=f"price_new_{number}",
            product_id=product_id,
            unit_amount=unit_amount,
            currency=currency or self.config.currency,
            nickname=nickname,
        )
        self.prices.setdefault(product_id, []).append(price)
        return price

    def upload_file(self, content, filename, mime_type, purpose="product_image") -> str:
        number = self._record("upload_file", filename, mime_type, purpose)
        return f"file_{number}"

    def create_file_link(self, file_id: str) -> str:
        self._record("create_file_link", file_id)
        return f"https://files.stripe.com/links/{file_id}"


class FakeResponse:
    def __init__(self, status_code=200, chunks=(PNG_BYTES,), error=None, json_data=None, text=""):
        self.status_code = status_code
        self.chunks = list(chunks)
        self.error = error
        self.json_data = json_data
        self.text = text
        self.closed = False

    def iter_content(self, chunk_size=1):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    def json(self):
        if self.json_data is None:
            raise ValueError("No JSON body")
        return self.json_data

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions"""

    def __init__(self, responses=None, default=None):
        self.responses = list(responses or [])
        self.default = default
        self.requests = []

    def _next(self):
        response = self.responses.pop(0) if self.responses else (self.default or FakeResponse())
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        self.requests.append(("GET", url, kwargs))
        return self._next()

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self._next()


def make_products(count: int, with_images: bool = True, with_prices: bool = True):
    """Build `count` active products (and their prices) named SKU-000, SKU-001, ..."""
    products = []
    prices = {}
    for i in range(count):
        product = RemoteProduct(
            id=f"prod_{i:03d}",
            name=f"Product {i}",
            description=f"Description {i}",
            metadata={PRODUCT_CODE_KEY: f"SKU-{i:03d}"},
            images=[f"https://cdn.example.com/images/sku-{i:03d}.png"] if with_images else [],
        )
        products.append(product)
        if with_prices:
            prices[product.id] = [
                RemotePrice(
                    id=f"price_{i:03d}",
                    product_id=product.id,
                    unit_amount=1000 + i,
                    currency="usd",
                    nickname=f"SKU-{i:03d}",
                )
            ]
    return products, prices


def write_table(path: Path, rows: List[dict], columns: Optional[List[str]] = None) -> Path:
    """Write rows to an .xlsx or .csv table"""
    df = pd.DataFrame(rows, columns=columns or EXPORT_COLUMNS[:5])
    df = df.fillna("")
    if path.suffix == ".csv":
        df.to_csv(path, index=False)
    else:
        df.to_excel(path, index=False, engine="openpyxl")
    return path


def read_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".csv":
        return pd.read_csv(path, dtype=str, keep_default_na=False)
    return pd.read_excel(path, dtype=str, keep_default_na=False, engine="openpyxl")


@pytest.fixture
def image_dir(tmp_path) -> Path:
    return tmp_path / "productImages"


@pytest.fixture
def paths(tmp_path) -> PathConfig:
    return PathConfig(root=tmp_path)


@pytest.fixture
def download_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def fake_client() -> FakeStripeClient:
    return FakeStripeClient()


@pytest.fixture
def image_store(fake_client, image_dir, download_session) -> ImageStore:
    return ImageStore(fake_client, image_dir, session=download_session, clock=lambda: 1700000000.0)


@pytest.fixture
def make_image(image_dir):
    def _make(filename: str, content: bytes = PNG_BYTES) -> Path:
        image_dir.mkdir(parents=True, exist_ok=True)
        path = image_dir / filename
        path.write_bytes(content)
        return path
    return _make
