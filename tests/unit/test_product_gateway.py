"""
============================================================================
Unit Tests - Remote Product Gateway
============================================================================

Python 3.8 Compatible

Tests:
- ProductSetInput shape (single variant, fixed 2-decimal price, tags)
- Best-effort image attachment and sales-channel publishing
- User-error and empty-result mapping (TPL-003 / TPL-004)
- delete_product and the bulk_delete partition
============================================================================
"""

import os
import sys
from decimal import Decimal

import pytest

# Add project root and tests to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from fakes import FakeAdminCapability
from app.storefront.admin_client import GraphQLRequest, GraphQLResponse
from app.storefront.product_gateway import (
    RemoteProductGateway,
    format_money,
    normalize_image_url,
    render_description_html,
    render_title,
)
from services.temp_product_models import (
    DimensionSpec,
    Material,
    RemoteEmptyResultError,
    RemoteMutationError,
    RemoteTransportError,
)


SPEC = DimensionSpec(200, 300, Material.WOOD)
PRICE = Decimal("56")
TITLE = render_title(SPEC, "Wood")


class ScriptedCapability(FakeAdminCapability):
    """FakeAdminCapability with one operation's response replaced."""

    def __init__(self, operation: str, data: dict, **kwargs) -> None:
        super().__init__(**kwargs)
        self._operation = operation
        self._data = data

    def execute(self, request: GraphQLRequest) -> GraphQLResponse:
        if request.operation_name == self._operation:
            self.requests.append(request)
            return GraphQLResponse(data=self._data)
        return super().execute(request)


@pytest.fixture
def gateway() -> RemoteProductGateway:
    return RemoteProductGateway(correlation_id="test-correlation")


# =============================================================================
# Content helpers
# =============================================================================

class TestContentHelpers:

    def test_title(self) -> None:
        assert TITLE == "Custom Frame 200×300mm - Wood"

    def test_description_lists_dimensions(self) -> None:
        html = render_description_html(SPEC, "Wood", PRICE)

        assert "<li>Height: 200mm</li>" in html
        assert "<li>Width: 300mm</li>" in html
        assert "<li>Price: 56.00 TL</li>" in html

    def test_description_escapes_material_name(self) -> None:
        assert "&lt;b&gt;" in render_description_html(SPEC, "<b>", PRICE)

    @pytest.mark.parametrize("price,expected", [
        (Decimal("56"), "56.00"),
        (Decimal("114.4"), "114.40"),
        (Decimal("0.005"), "0.01"),
    ])
    def test_format_money(self, price: Decimal, expected: str) -> None:
        assert format_money(price) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
        ("//cdn.example.com/a.png", "https://cdn.example.com/a.png"),
        ("  http://cdn.example.com/a.png ", "http://cdn.example.com/a.png"),
        ("ftp://cdn.example.com/a.png", None),
        ("", None),
        (None, None),
    ])
    def test_normalize_image_url(self, raw, expected) -> None:
        assert normalize_image_url(raw) == expected


# =============================================================================
# Create
# =============================================================================

class TestBuildProductInput:

    def test_single_variant_with_fixed_price(self, gateway: RemoteProductGateway) -> None:
        product_input = gateway.build_product_input(SPEC, PRICE, TITLE, "<p/>")

        assert product_input["title"] == TITLE
        assert product_input["status"] == "ACTIVE"
        assert len(product_input["variants"]) == 1
        assert product_input["variants"][0]["price"] == "56.00"
        assert product_input["tags"] == ["temp-product", "auto-delete", "material-wood"]
        assert "files" not in product_input

    def test_image_attached_when_usable(self, gateway: RemoteProductGateway) -> None:
        product_input = gateway.build_product_input(
            SPEC, PRICE, TITLE, "<p/>", "//cdn.example.com/frame.png"
        )

        assert product_input["files"] == [{
            "originalSource": "https://cdn.example.com/frame.png",
            "contentType": "IMAGE",
            "alt": TITLE,
        }]

    def test_unusable_image_dropped(self, gateway: RemoteProductGateway) -> None:
        product_input = gateway.build_product_input(SPEC, PRICE, TITLE, "<p/>", "data:image/png")

        assert "files" not in product_input


class TestCreateProduct:

    def test_creates_and_publishes(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability()

        created = gateway.create_product(capability, SPEC, PRICE, TITLE, "<p/>")

        assert created.remote_product_id == "1001"
        assert created.remote_variant_id == "6001"
        assert created.title == TITLE
        assert created.public_url.endswith("/products/custom-frame-1001")
        assert capability.operations() == [
            "createTempProduct", "salesChannels", "publishTempProduct",
        ]
        publish = capability.requests[2]
        assert publish.variables == {
            "id": "gid://shopify/Product/1001",
            "input": [{"publicationId": "gid://shopify/Publication/1"}],
        }

    def test_missing_sales_channel_is_not_fatal(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability(publications=[])

        created = gateway.create_product(capability, SPEC, PRICE, TITLE, "<p/>")

        assert created.remote_product_id == "1001"
        assert created.public_url is None
        assert "publishTempProduct" not in capability.operations()

    def test_publish_failure_is_not_fatal(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability(
            raise_on={"publishTempProduct": RemoteTransportError("reset")}
        )

        created = gateway.create_product(capability, SPEC, PRICE, TITLE, "<p/>")

        assert created.remote_variant_id == "6001"
        assert created.public_url is None

    def test_user_errors_raise_mutation_error(self, gateway: RemoteProductGateway) -> None:
        capability = ScriptedCapability("createTempProduct", {
            "productSet": {
                "product": None,
                "userErrors": [
                    {"field": ["input", "title"], "message": "Title is too long"},
                    {"field": None, "message": "Shop is frozen"},
                ],
            }
        })

        with pytest.raises(RemoteMutationError) as exc_info:
            gateway.create_product(capability, SPEC, PRICE, TITLE, "<p/>")

        assert exc_info.value.messages == ["Title is too long", "Shop is frozen"]
        assert exc_info.value.fields == ["input.title", None]
        assert capability.operations() == ["createTempProduct"]

    def test_missing_product_raises_empty_result(self, gateway: RemoteProductGateway) -> None:
        capability = ScriptedCapability(
            "createTempProduct", {"productSet": {"product": None, "userErrors": []}}
        )

        with pytest.raises(RemoteEmptyResultError) as exc_info:
            gateway.create_product(capability, SPEC, PRICE, TITLE, "<p/>")

        assert exc_info.value.error_code == "TPL-004"

    def test_missing_variant_raises_empty_result(self, gateway: RemoteProductGateway) -> None:
        capability = ScriptedCapability("createTempProduct", {
            "productSet": {
                "product": {"id": "gid://shopify/Product/7", "variants": {"nodes": []}},
                "userErrors": [],
            }
        })

        with pytest.raises(RemoteEmptyResultError, match="variant"):
            gateway.create_product(capability, SPEC, PRICE, TITLE, "<p/>")

    def test_transport_error_propagates(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability(
            raise_on={"createTempProduct": RemoteTransportError("timeout")}
        )

        with pytest.raises(RemoteTransportError):
            gateway.create_product(capability, SPEC, PRICE, TITLE, "<p/>")


# =============================================================================
# Delete
# =============================================================================

class TestDeleteProduct:

    def test_accepts_local_id(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability()

        assert gateway.delete_product(capability, "1001") == "1001"
        assert capability.requests[0].variables == {
            "input": {"id": "gid://shopify/Product/1001"}
        }

    def test_accepts_global_id(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability()

        assert gateway.delete_product(capability, "gid://shopify/Product/9") == "gid://shopify/Product/9"
        assert capability.requests[0].variables["input"]["id"] == "gid://shopify/Product/9"

    def test_not_found_is_a_failure(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability(failing_deletes=["1001"])

        with pytest.raises(RemoteMutationError, match="does not exist"):
            gateway.delete_product(capability, "1001")

    def test_missing_payload(self, gateway: RemoteProductGateway) -> None:
        capability = ScriptedCapability("deleteTempProduct", {})

        with pytest.raises(RemoteEmptyResultError):
            gateway.delete_product(capability, "1001")


class TestBulkDelete:

    def test_partitions_ids(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability(failing_deletes=["2"])

        result = gateway.bulk_delete(capability, ["1", "2", "3"])

        assert result.succeeded == frozenset({"1", "3"})
        assert result.failed == (("2", "Product does not exist"),)
        assert result.total == 3

    def test_attempts_every_id_in_order_after_failures(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability(
            raise_on={"deleteTempProduct": RemoteTransportError("down")}
        )

        result = gateway.bulk_delete(capability, ["1", "2", "3"])

        assert result.succeeded == frozenset()
        assert result.failed_ids == frozenset({"1", "2", "3"})
        assert [r.variables["input"]["id"] for r in capability.requests] == [
            "gid://shopify/Product/1",
            "gid://shopify/Product/2",
            "gid://shopify/Product/3",
        ]

    def test_duplicates_attempted_once(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability()

        result = gateway.bulk_delete(capability, ["1", "1", "2"])

        assert result.succeeded == frozenset({"1", "2"})
        assert len(capability.requests) == 2

    def test_empty_id_fails_without_remote_call(self, gateway: RemoteProductGateway) -> None:
        capability = FakeAdminCapability()

        result = gateway.bulk_delete(capability, [""])

        assert result.failed_ids == frozenset({""})
        assert capability.requests == []

    def test_empty_input(self, gateway: RemoteProductGateway) -> None:
        result = gateway.bulk_delete(FakeAdminCapability(), [])

        assert result.total == 0
