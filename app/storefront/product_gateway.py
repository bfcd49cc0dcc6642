# ============================================================================
# Dynamic Frame Pricing v1.0.0
# Remote Product Gateway - Temporary Product Mutations
# ============================================================================
#
# Reliability Level: L5 Critical
# Purpose: Map create/delete intents to admin GraphQL mutations and
#          normalize results and errors
#
# MANDATE:
#   - One product, one variant, price as a fixed 2-decimal string
#   - Tags: temp-product, auto-delete, material-<type>
#   - Image media and sales-channel publishing are best-effort: logged and
#     skipped on failure, never fatal to creation
#   - bulk_delete attempts every id exactly once; the result partitions the
#     input into succeeded and failed
#
# Error Codes:
#   - TPL-003: Platform reported user errors
#   - TPL-004: Mutation succeeded with no product payload
#
# ============================================================================

import logging
from decimal import Decimal, ROUND_HALF_UP
from functools import reduce
from html import escape
from typing import Any, Dict, Iterable, List, Optional

from app.storefront.admin_client import AdminCapability, GraphQLRequest
from app.storefront.global_id import extract_local_id, to_global_id
from services.temp_product_models import (
    AUTO_DELETE_TAG,
    PRECISION_MONEY,
    TEMP_PRODUCT_TAG,
    BulkDeleteResult,
    CreatedProduct,
    DimensionSpec,
    RemoteEmptyResultError,
    RemoteError,
    RemoteMutationError,
)

logger = logging.getLogger(__name__)


# ============================================================================
# GraphQL Documents
# ============================================================================

PRODUCT_SET_MUTATION = """
mutation createTempProduct($input: ProductSetInput!, $synchronous: Boolean!) {
  productSet(synchronous: $synchronous, input: $input) {
    product {
      id
      title
      handle
      onlineStoreUrl
      variants(first: 1) {
        nodes {
          id
          price
        }
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""

PUBLICATIONS_QUERY = """
query salesChannels {
  publications(first: 20) {
    nodes {
      id
      name
    }
  }
}
"""

PUBLISH_MUTATION = """
mutation publishTempProduct($id: ID!, $input: [PublicationInput!]!) {
  publishablePublish(id: $id, input: $input) {
    publishable {
      ... on Product {
        onlineStoreUrl
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""

PRODUCT_DELETE_MUTATION = """
mutation deleteTempProduct($input: ProductDeleteInput!) {
  productDelete(input: $input) {
    deletedProductId
    userErrors {
      field
      message
    }
  }
}
"""

PRODUCT_TYPE = "Temporary Product"
PRODUCT_VENDOR = "Dynamic Pricing System"
PRIMARY_PUBLICATION_NAME = "Online Store"
DEFAULT_OPTION_NAME = "Title"
DEFAULT_OPTION_VALUE = "Default Title"


# ============================================================================
# Content Helpers
# ============================================================================

def render_title(spec: DimensionSpec, material_name: str) -> str:
    return f"Custom Frame {spec.height}×{spec.width}mm - {material_name}"


def render_description_html(
    spec: DimensionSpec,
    material_name: str,
    price: Decimal,
    currency_suffix: str = "TL",
) -> str:
    return (
        "<p><strong>Custom Frame</strong></p>"
        "<ul>"
        f"<li>Height: {spec.height}mm</li>"
        f"<li>Width: {spec.width}mm</li>"
        f"<li>Material: {escape(material_name)}</li>"
        f"<li>Price: {format_money(price)} {escape(currency_suffix)}</li>"
        "</ul>"
        "<p><em>Note: This product was created for your custom order.</em></p>"
    )


def format_money(price: Decimal) -> str:
    """Fixed 2-decimal string, e.g. Decimal('56') -> '56.00'."""
    return str(Decimal(str(price)).quantize(PRECISION_MONEY, rounding=ROUND_HALF_UP))


def normalize_image_url(image_url: Optional[str]) -> Optional[str]:
    """
    Usable http(s) image URL, or None.

    A scheme-relative "//host/path" is upgraded to https; anything else
    without an http(s) scheme is dropped.
    """
    if not image_url:
        return None
    url = image_url.strip()
    if url.startswith("//"):
        url = f"https:{url}"
    if url.lower().startswith(("http://", "https://")):
        return url
    return None


def _user_error_messages(payload: Dict[str, Any]) -> List[str]:
    return [str(err.get("message", "")) for err in payload.get("userErrors") or []]


def _user_error_fields(payload: Dict[str, Any]) -> List[Optional[str]]:
    fields: List[Optional[str]] = []
    for err in payload.get("userErrors") or []:
        field_path = err.get("field")
        fields.append(".".join(field_path) if isinstance(field_path, list) else field_path)
    return fields


# ============================================================================
# Gateway
# ============================================================================

class RemoteProductGateway:
    """
    Temporary product mutations against the admin API.

    All methods take the per-request AdminCapability explicitly; the gateway
    itself holds no shop state.
    """

    def __init__(
        self,
        primary_publication_name: str = PRIMARY_PUBLICATION_NAME,
        correlation_id: Optional[str] = None,
    ):
        self.primary_publication_name = primary_publication_name
        self.correlation_id = correlation_id

    # ========================================================================
    # Create
    # ========================================================================

    def build_product_input(
        self,
        spec: DimensionSpec,
        price: Decimal,
        title: str,
        description_html: str,
        image_url: Optional[str] = None,
    ) -> Dict[str, Any]:
        """ProductSetInput for a single-variant temporary product."""
        product_input: Dict[str, Any] = {
            "title": title,
            "descriptionHtml": description_html,
            "productType": PRODUCT_TYPE,
            "vendor": PRODUCT_VENDOR,
            "status": "ACTIVE",
            "tags": [TEMP_PRODUCT_TAG, AUTO_DELETE_TAG, f"material-{spec.material.value}"],
            "productOptions": [
                {"name": DEFAULT_OPTION_NAME, "values": [{"name": DEFAULT_OPTION_VALUE}]}
            ],
            "variants": [
                {
                    "optionValues": [
                        {"optionName": DEFAULT_OPTION_NAME, "name": DEFAULT_OPTION_VALUE}
                    ],
                    "price": format_money(price),
                    "inventoryPolicy": "CONTINUE",
                }
            ],
        }

        normalized = normalize_image_url(image_url)
        if normalized:
            product_input["files"] = [
                {
                    "originalSource": normalized,
                    "contentType": "IMAGE",
                    "alt": title,
                }
            ]
        elif image_url:
            logger.warning(
                f"[PRODUCT-GATEWAY] Image URL dropped (no http/https scheme) | "
                f"image_url={image_url!r} | correlation_id={self.correlation_id}"
            )

        return product_input

    def create_product(
        self,
        capability: AdminCapability,
        spec: DimensionSpec,
        price: Decimal,
        title: str,
        description_html: str,
        image_url: Optional[str] = None,
    ) -> CreatedProduct:
        """
        Create a temporary product with one priced variant.

        Returns:
            CreatedProduct with local ids and, when publishing succeeded,
            a public URL

        Raises:
            RemoteMutationError: Platform reported user errors (TPL-003)
            RemoteEmptyResultError: No product payload returned (TPL-004)
            RemoteTransportError: Transport failure (TPL-005)
        """
        product_input = self.build_product_input(
            spec, price, title, description_html, image_url
        )

        response = capability.execute(
            GraphQLRequest(
                query=PRODUCT_SET_MUTATION,
                variables={"input": product_input, "synchronous": True},
                operation_name="createTempProduct",
            )
        )

        payload = response.data.get("productSet") or {}
        messages = _user_error_messages(payload)
        if messages:
            logger.error(
                f"[{RemoteMutationError.error_code}] Product creation rejected | "
                f"title={title} | errors={messages} | "
                f"correlation_id={self.correlation_id}"
            )
            raise RemoteMutationError(messages, _user_error_fields(payload))

        product = payload.get("product")
        if not product or not product.get("id"):
            logger.error(
                f"[{RemoteEmptyResultError.error_code}] Product creation returned no product | "
                f"title={title} | correlation_id={self.correlation_id}"
            )
            raise RemoteEmptyResultError("Product creation returned no product")

        variants = ((product.get("variants") or {}).get("nodes")) or []
        if not variants or not variants[0].get("id"):
            raise RemoteEmptyResultError("Product creation returned no variant")

        product_gid = product["id"]
        public_url = self._publish_best_effort(capability, product_gid)
        if public_url is None:
            public_url = product.get("onlineStoreUrl")

        created = CreatedProduct(
            remote_product_id=extract_local_id(product_gid),
            remote_variant_id=extract_local_id(variants[0]["id"]),
            title=product.get("title") or title,
            handle=product.get("handle"),
            public_url=public_url,
        )

        logger.info(
            f"[PRODUCT-GATEWAY] Product created | "
            f"product_id={created.remote_product_id} | "
            f"variant_id={created.remote_variant_id} | "
            f"price={format_money(price)} | published={public_url is not None} | "
            f"correlation_id={self.correlation_id}"
        )
        return created

    def _publish_best_effort(
        self,
        capability: AdminCapability,
        product_gid: str,
    ) -> Optional[str]:
        """Publish to the primary sales channel; None on any remote failure."""
        try:
            response = capability.execute(
                GraphQLRequest(query=PUBLICATIONS_QUERY, operation_name="salesChannels")
            )
            nodes = ((response.data.get("publications") or {}).get("nodes")) or []
            publication_id = next(
                (
                    node.get("id") for node in nodes
                    if node.get("name") == self.primary_publication_name
                ),
                None,
            )
            if publication_id is None:
                logger.warning(
                    f"[PRODUCT-GATEWAY] Sales channel not found | "
                    f"name={self.primary_publication_name} | product_id={product_gid} | "
                    f"correlation_id={self.correlation_id}"
                )
                return None

            response = capability.execute(
                GraphQLRequest(
                    query=PUBLISH_MUTATION,
                    variables={"id": product_gid, "input": [{"publicationId": publication_id}]},
                    operation_name="publishTempProduct",
                )
            )
            payload = response.data.get("publishablePublish") or {}
            messages = _user_error_messages(payload)
            if messages:
                raise RemoteMutationError(messages, _user_error_fields(payload))

            return (payload.get("publishable") or {}).get("onlineStoreUrl")

        except RemoteError as e:
            logger.warning(
                f"[PRODUCT-GATEWAY] Publish skipped | "
                f"product_id={product_gid} | error={e} | "
                f"correlation_id={self.correlation_id}"
            )
            return None

    # ========================================================================
    # Delete
    # ========================================================================

    def delete_product(self, capability: AdminCapability, remote_product_id: str) -> str:
        """
        Delete one product.

        Returns:
            The remote product id as passed in

        Raises:
            RemoteMutationError: Platform reported user errors (TPL-003)
            RemoteEmptyResultError: No delete payload returned (TPL-004)
            RemoteTransportError: Transport failure (TPL-005)
        """
        gid = to_global_id("Product", remote_product_id)

        response = capability.execute(
            GraphQLRequest(
                query=PRODUCT_DELETE_MUTATION,
                variables={"input": {"id": gid}},
                operation_name="deleteTempProduct",
            )
        )

        payload = response.data.get("productDelete")
        if payload is None:
            raise RemoteEmptyResultError(f"Product delete returned no payload for {gid}")

        messages = _user_error_messages(payload)
        if messages:
            raise RemoteMutationError(messages, _user_error_fields(payload))

        logger.debug(
            f"[PRODUCT-GATEWAY] Product deleted | product_id={gid} | "
            f"correlation_id={self.correlation_id}"
        )
        return remote_product_id

    def bulk_delete(
        self,
        capability: AdminCapability,
        remote_product_ids: Iterable[str],
    ) -> BulkDeleteResult:
        """
        Delete products one by one, folding outcomes into a partition.

        Ids are attempted sequentially, each exactly once (duplicates are
        collapsed); one failure never aborts the batch.
        """
        unique_ids = list(dict.fromkeys(remote_product_ids))

        def step(result: BulkDeleteResult, remote_id: str) -> BulkDeleteResult:
            try:
                self.delete_product(capability, remote_id)
            except (RemoteError, ValueError) as e:
                message = e.message if isinstance(e, RemoteError) else str(e)
                logger.warning(
                    f"[PRODUCT-GATEWAY] Delete failed | product_id={remote_id} | "
                    f"error={e} | correlation_id={self.correlation_id}"
                )
                return result.with_failure(remote_id, message)
            return result.with_success(remote_id)

        result = reduce(step, unique_ids, BulkDeleteResult())

        logger.info(
            f"[PRODUCT-GATEWAY] Bulk delete complete | "
            f"requested={len(unique_ids)} | succeeded={len(result.succeeded)} | "
            f"failed={len(result.failed)} | correlation_id={self.correlation_id}"
        )
        return result
