"""
Stripe API client with rate limiting and error handling
"""
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from .config import SyncConfig
from .errors import ImageMissing, RemoteError, ValidationError
from .models import PRODUCT_CODE_KEY, ProductPage, RemotePrice, RemoteProduct

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.stripe.com/v1/"
FILES_BASE_URL = "https://files.stripe.com/v1/"

# Stripe caps list endpoints at 100 items per page
MAX_PAGE_SIZE = 100

PRODUCT_IMAGE_PURPOSE = "product_image"


class StripeClient:
    """
    Thin typed operations over the Stripe REST API

    Every failure surfaces as RemoteError; nothing is retried.
    """

    def __init__(
        self,
        config: SyncConfig,
        session: Optional[requests.Session] = None,
        api_base_url: str = API_BASE_URL,
        files_base_url: str = FILES_BASE_URL,
    ):
        self.config = config
        self.session = session or requests.Session()
        self.api_base_url = api_base_url
        self.files_base_url = files_base_url

        # Rate limiting
        self.request_times: List[float] = []
        self.max_requests_per_second = config.max_requests_per_second

        self.headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Accept": "application/json",
        }
        if config.api_version:
            self.headers["Stripe-Version"] = config.api_version

        logger.debug("Initialized Stripe client")

    def _wait_for_rate_limit(self) -> None:
        """Enforce rate limiting"""
        if self.max_requests_per_second <= 0:
            return

        now = time.time()

        # Remove requests older than 1 second
        self.request_times = [t for t in self.request_times if now - t < 1.0]

        if len(self.request_times) >= self.max_requests_per_second:
            sleep_time = 1.0 - (now - self.request_times[0])
            if sleep_time > 0:
                time.sleep(sleep_time)
                now = time.time()
                self.request_times = [t for t in self.request_times if now - t < 1.0]

        self.request_times.append(now)

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        base_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Make rate-limited request to the Stripe API"""
        self._wait_for_rate_limit()

        url = (base_url or self.api_base_url) + endpoint

        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=self.headers,
                params=params,
                data=data,
                files=files,
                timeout=self.config.request_timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {method} {endpoint}: {e}")
            raise RemoteError(f"Request failed: {method} {endpoint}: {e}", cause=e)

        if not 200 <= response.status_code < 300:
            message = _error_message(response)
            logger.error(f"Stripe error {response.status_code} on {method} {endpoint}: {message}")
            raise RemoteError(
                f"Stripe error {response.status_code} on {method} {endpoint}: {message}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(
                f"Invalid JSON from Stripe on {method} {endpoint}",
                status_code=response.status_code,
                cause=e,
            )

    def list_products(self, page_size: int = MAX_PAGE_SIZE, cursor: Optional[str] = None) -> ProductPage:
        """Get one page of active products"""
        params: Dict[str, Any] = {
            "limit": max(1, min(page_size, MAX_PAGE_SIZE)),
            "active": "true",
        }
        if cursor:
            params["starting_after"] = cursor

        response = self._make_request("GET", "products", params=params)
        items = [RemoteProduct.from_stripe_api(item) for item in response.get("data", [])]
        next_cursor = items[-1].id if items else cursor
        return ProductPage(
            items=items,
            next_cursor=next_cursor,
            has_more=bool(response.get("has_more")),
        )

    def list_active_prices(self, product_id: str) -> List[RemotePrice]:
        """Get active prices of a product, in Stripe's order"""
        params = {
            "product": product_id,
            "active": "true",
            "limit": MAX_PAGE_SIZE,
        }
        response = self._make_request("GET", "prices", params=params)
        return [RemotePrice.from_stripe_api(item) for item in response.get("data", [])]

    def create_product(
        self,
        name: str,
        description: str,
        code: str,
        image_url: Optional[str] = None,
    ) -> RemoteProduct:
        """Create new product; image_url must already be publicly resolvable"""
        data: Dict[str, Any] = {
            "name": name,
            f"metadata[{PRODUCT_CODE_KEY}]": code,
        }
        if description:
            data["description"] = description
        if image_url:
            data["images[0]"] = image_url

        product = RemoteProduct.from_stripe_api(self._make_request("POST", "products", data=data))

        if image_url and not product.images:
            logger.warning(f"Product created but no images were attached. Product ID: {product.id}")
        return product

    def create_price(
        self,
        product_id: str,
        unit_amount: int,
        nickname: str,
        currency: Optional[str] = None,
    ) -> RemotePrice:
        """Create a price in the smallest currency unit"""
        if isinstance(unit_amount, bool) or not isinstance(unit_amount, int) or unit_amount <= 0:
            raise ValidationError(f"Unit amount must be a positive integer, got {unit_amount!r}")

        data = {
            "product": product_id,
            "unit_amount": unit_amount,
            "currency": currency or self.config.currency,
            "nickname": nickname,
        }
        return RemotePrice.from_stripe_api(self._make_request("POST", "prices", data=data))

    def upload_file(
        self,
        content: bytes,
        filename: str,
        mime_type: str,
        purpose: str = PRODUCT_IMAGE_PURPOSE,
    ) -> str:
        """Upload a file and return its Stripe file id"""
        if not content:
            raise ImageMissing(f"Refusing to upload empty file: {filename}")

        response = self._make_request(
            "POST",
            "files",
            data={"purpose": purpose},
            files={"file": (filename, content, mime_type)},
            base_url=self.files_base_url,
        )
        if not response.get("id"):
            raise RemoteError(f"File upload returned no id: {filename}")
        return response["id"]

    def create_file_link(self, file_id: str) -> str:
        """Create a public link for an uploaded file and return its URL"""
        response = self._make_request("POST", "file_links", data={"file": file_id})
        if not response.get("url"):
            raise RemoteError(f"File link for {file_id} returned no url")
        return response["url"]


def _error_message(response: requests.Response) -> str:
    """Extract Stripe's error message, falling back to the raw body"""
    try:
        payload = response.json()
    except ValueError:
        return response.text
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return response.text
