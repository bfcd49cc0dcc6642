# ============================================================================
# Dynamic Frame Pricing v1.0.0
# Storefront cart helpers
# ============================================================================

from typing import Any, Dict, Iterable, Mapping

from app.storefront.global_id import extract_local_id
from services.temp_product_models import TEMP_PRODUCT_TAG


def prepare_cart_item(
    variant_id: str,
    quantity: int = 1,
    properties: Mapping[str, Any] = None,
) -> Dict[str, Any]:
    """
    Cart line payload for the storefront cart API.

    Args:
        variant_id: Local or global variant id
        quantity: Line quantity (must be positive)
        properties: Line item properties shown to the customer

    Raises:
        ValueError: If quantity is not positive
    """
    if quantity < 1:
        raise ValueError(f"quantity must be positive, got: {quantity}")

    return {
        "id": extract_local_id(variant_id),
        "quantity": quantity,
        "properties": [
            {"key": key, "value": str(value)}
            for key, value in (properties or {}).items()
        ],
    }


def is_temp_product(tags: Iterable[str]) -> bool:
    """True if the product carries the temporary-product tag."""
    return TEMP_PRODUCT_TAG in set(tags)
