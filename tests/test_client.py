import pytest
import requests

from conftest import FakeResponse, FakeSession
from stripe_catalog_sync.client import FILES_BASE_URL, StripeClient
from stripe_catalog_sync.config import SyncConfig
from stripe_catalog_sync.errors import ErrorKind, ImageMissing, RemoteError, ValidationError


def _client(*responses, api_version=None):
    session = FakeSession(responses=list(responses))
    config = SyncConfig(api_key="sk_test_123", api_version=api_version, max_requests_per_second=0)
    return StripeClient(config, session=session), session


def _product(product_id, **extra):
    data = {"id": product_id, "name": f"Name {product_id}", "metadata": {"product_code": product_id.upper()}, "images": []}
    data.update(extra)
    return data


def test_list_products_requests_active_page_and_returns_cursor():
    client, session = _client(
        FakeResponse(json_data={"data": [_product("prod_a"), _product("prod_b")], "has_more": True})
    )

    page = client.list_products(page_size=500, cursor="prod_0")

    method, url, kwargs = session.requests[0]
    assert method == "GET"
    assert url.endswith("/v1/products")
    assert kwargs["params"] == {"limit": 100, "active": "true", "starting_after": "prod_0"}
    assert kwargs["headers"]["Authorization"] == "Bearer sk_test_123"
    assert [p.id for p in page.items] == ["prod_a", "prod_b"]
    assert page.next_cursor == "prod_b"
    assert page.has_more is True


def test_first_page_has_no_cursor():
    client, session = _client(FakeResponse(json_data={"data": [], "has_more": False}))

    page = client.list_products(page_size=10)

    assert "starting_after" not in session.requests[0][2]["params"]
    assert page.items == []
    assert page.has_more is False


def test_api_version_header_is_sent_when_configured():
    client, session = _client(FakeResponse(json_data={"data": []}), api_version="2024-06-20")
    client.list_active_prices("prod_1")
    assert session.requests[0][2]["headers"]["Stripe-Version"] == "2024-06-20"


def test_list_active_prices_filters_by_product():
    client, session = _client(
        FakeResponse(json_data={"data": [
            {"id": "price_1", "product": "prod_1", "unit_amount": 1999, "currency": "usd"},
            {"id": "price_2", "product": "prod_1", "unit_amount": 2999, "currency": "usd"},
        ]})
    )

    prices = client.list_active_prices("prod_1")

    assert session.requests[0][2]["params"] == {"product": "prod_1", "active": "true", "limit": 100}
    assert [p.id for p in prices] == ["price_1", "price_2"]
    assert prices[0].unit_amount == 1999


def test_create_product_sends_code_metadata_and_image():
    client, session = _client(
        FakeResponse(json_data=_product("prod_new", images=["https://files.stripe.com/links/x"]))
    )

    product = client.create_product("Mug", "Blue mug", "SKU-1", "https://files.stripe.com/links/x")

    method, url, kwargs = session.requests[0]
    assert method == "POST"
    assert url.endswith("/v1/products")
    assert kwargs["data"] == {
        "name": "Mug",
        "description": "Blue mug",
        "metadata[product_code]": "SKU-1",
        "images[0]": "https://files.stripe.com/links/x",
    }
    assert product.id == "prod_new"


def test_create_price_sends_minor_units_and_nickname():
    client, session = _client(
        FakeResponse(json_data={"id": "price_9", "product": "prod_1", "unit_amount": 1999, "currency": "usd", "nickname": "SKU-1"})
    )

    price = client.create_price("prod_1", 1999, nickname="SKU-1")

    assert session.requests[0][2]["data"] == {
        "product": "prod_1",
        "unit_amount": 1999,
        "currency": "usd",
        "nickname": "SKU-1",
    }
    assert price.id == "price_9"


@pytest.mark.parametrize("amount", [0, -5, 19.99, True])
def test_create_price_rejects_bad_amount_before_network(amount):
    client, session = _client()
    with pytest.raises(ValidationError):
        client.create_price("prod_1", amount, nickname="SKU-1")
    assert session.requests == []


def test_upload_file_posts_multipart_to_files_host():
    client, session = _client(FakeResponse(json_data={"id": "file_123"}))

    file_id = client.upload_file(b"bytes", "mug.png", "image/png")

    method, url, kwargs = session.requests[0]
    assert url == FILES_BASE_URL + "files"
    assert kwargs["data"] == {"purpose": "product_image"}
    assert kwargs["files"] == {"file": ("mug.png", b"bytes", "image/png")}
    assert file_id == "file_123"


def test_upload_file_rejects_empty_content_before_network():
    client, session = _client()
    with pytest.raises(ImageMissing):
        client.upload_file(b"", "empty.png", "image/png")
    assert session.requests == []


def test_create_file_link_returns_url():
    client, session = _client(FakeResponse(json_data={"id": "link_1", "url": "https://files.stripe.com/links/abc"}))

    assert client.create_file_link("file_123") == "https://files.stripe.com/links/abc"
    assert session.requests[0][2]["data"] == {"file": "file_123"}


def test_error_response_raises_remote_error_without_retry():
    client, session = _client(
        FakeResponse(status_code=500, json_data={"error": {"message": "Something broke"}}),
        FakeResponse(json_data={"data": []}),
    )

    with pytest.raises(RemoteError) as exc_info:
        client.list_products()

    assert exc_info.value.kind == ErrorKind.REMOTE
    assert exc_info.value.status_code == 500
    assert "Something broke" in str(exc_info.value)
    assert len(session.requests) == 1


def test_auth_error_uses_raw_body_when_not_json():
    client, _ = _client(FakeResponse(status_code=401, text="Unauthorized"))
    with pytest.raises(RemoteError) as exc_info:
        client.list_active_prices("prod_1")
    assert exc_info.value.status_code == 401
    assert "Unauthorized" in str(exc_info.value)


def test_transport_error_raises_remote_error():
    client, _ = _client(requests.exceptions.ConnectionError("connection refused"))
    with pytest.raises(RemoteError) as exc_info:
        client.list_products()
    assert isinstance(exc_info.value.cause, requests.exceptions.ConnectionError)
    assert exc_info.value.status_code is None


def test_file_link_without_url_is_a_remote_error():
    client, _ = _client(FakeResponse(json_data={"id": "link_1"}))
    with pytest.raises(RemoteError):
        client.create_file_link("file_123")
