"""
============================================================================
Dynamic Frame Pricing v1.0.0
Pricing & Temporary Product API Endpoints
============================================================================

Reliability Level: L5 Critical
Input Constraints:
    - Form fields height, width (integer mm) and material
    - Admin capability from the configured CapabilityProvider
    - X-Cron-Secret header for the cleanup trigger
Side Effects:
    - Remote product creation and deletion
    - Ledger writes to temp_products
    - Prometheus metrics updates

ENDPOINTS:
    POST /calculate-price        - Quote a frame (no side effects)
    POST /create-temp-product    - Provision or reuse a temporary product
    POST /cleanup-temp-products  - Sweep expired products (cron)
    GET  /cleanup-temp-products  - Usage hint (403 in production)

    The price and create routes are mounted under both /api and
    /apps/proxy (storefront app proxy).

ERROR CODES (HTTP):
    TPL-001 → 400    TPL-002 → 401
    TPL-003/004/005 → 502    TPL-006 → 500
    SEC-001/003 → 401    SEC-002 → 503

============================================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging
import uuid

from fastapi import APIRouter, Depends, Form, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.auth.security import (
    CRON_SECRET_HEADER,
    CronSecretError,
    verify_cron_secret,
)
from app.auth.shop_session import CapabilityProvider, EnvCapabilityProvider
from app.storefront.cart import prepare_cart_item
from services.pricing_config import ServiceConfig, get_service_config
from services.pricing_engine import PricingEngine
from services.temp_product_ledger import SqlTempProductLedger
from services.temp_product_lifecycle import TempProductLifecycleManager
from services.temp_product_models import (
    AuthError,
    RemoteError,
    StoreError,
    TempProductError,
    ValidationError,
)

# Configure module logger
logger = logging.getLogger(__name__)


# ============================================================================
# Router Configuration
# ============================================================================

# Mounted at /api and /apps/proxy
router = APIRouter()

# Mounted at /api only
cleanup_router = APIRouter()


# ============================================================================
# Dependencies
# ============================================================================

_lifecycle_manager: Optional[TempProductLifecycleManager] = None
_capability_provider: Optional[EnvCapabilityProvider] = None


def get_config() -> ServiceConfig:
    return get_service_config()


def get_lifecycle_manager() -> TempProductLifecycleManager:
    """Process-wide lifecycle manager over the SQL ledger."""
    global _lifecycle_manager

    if _lifecycle_manager is None:
        config = get_service_config()
        _lifecycle_manager = TempProductLifecycleManager(
            ledger=SqlTempProductLedger(),
            engine=PricingEngine(config.pricing_config()),
        )

    return _lifecycle_manager


def reset_lifecycle_manager() -> None:
    """Reset the singleton instance (for testing)."""
    global _lifecycle_manager
    _lifecycle_manager = None


def get_capability_provider() -> CapabilityProvider:
    """Process-wide provider; its admin client is shared across requests."""
    global _capability_provider

    if _capability_provider is None:
        _capability_provider = EnvCapabilityProvider(get_service_config())

    return _capability_provider


def reset_capability_provider() -> None:
    """Close the shared admin client and drop the provider."""
    global _capability_provider

    if _capability_provider is not None:
        _capability_provider.close()
    _capability_provider = None


# ============================================================================
# Request/Response Models
# ============================================================================

class PriceResponse(BaseModel):
    """Quote for one frame; money values as strings (Decimal)."""
    success: bool = True
    price: str = Field(description="Total price as string (Decimal)")
    formattedPrice: str
    coefficient: str = Field(description="Band coefficient as string (Decimal)")
    area: int = Field(description="height × width in mm²")
    material: str


class TempProductPayload(BaseModel):
    id: str
    productId: str
    variantId: str
    title: str
    price: str = Field(description="Freshly computed price as string (Decimal)")
    height: int
    width: int
    material: str
    publicUrl: Optional[str] = None
    deleteAt: str = Field(description="ISO format deletion deadline")


class CartItemProperty(BaseModel):
    key: str
    value: str


class CartItem(BaseModel):
    id: str
    quantity: int
    properties: List[CartItemProperty]


class CreateTempProductResponse(BaseModel):
    success: bool = True
    reused: bool
    product: TempProductPayload
    cartItem: CartItem


class CleanupResponse(BaseModel):
    success: bool = True
    message: str
    deleted: int
    failed: int
    errors: List[Dict[str, str]]


class ErrorResponse(BaseModel):
    """Standard error response model."""
    success: bool = False
    error_code: str
    error: str
    timestamp: str
    correlation_id: Optional[str] = None


# ============================================================================
# Helpers
# ============================================================================

def _parse_dimension(raw: Optional[str]) -> Any:
    """Form value → int; anything unparsable is passed through to fail validation."""
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return raw


_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthError, 401),
    (RemoteError, 502),
    (StoreError, 500),
)


def _error_json(status_code: int, error_code: str, message: str, correlation_id: str) -> JSONResponse:
    body = ErrorResponse(
        error_code=error_code,
        error=message,
        timestamp=datetime.now(timezone.utc).isoformat(),
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _error_response(error: TempProductError, correlation_id: str) -> JSONResponse:
    status_code = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = code
            break
    return _error_json(status_code, error.error_code, error.message, correlation_id)


# ============================================================================
# Pricing Endpoints
# ============================================================================

@router.post(
    "/calculate-price",
    response_model=PriceResponse,
    summary="Calculate Frame Price",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid dimensions or material (TPL-001)"},
    },
)
def calculate_price(
    height: Optional[str] = Form(None),
    width: Optional[str] = Form(None),
    material: Optional[str] = Form(None),
    manager: TempProductLifecycleManager = Depends(get_lifecycle_manager),
):
    correlation_id = str(uuid.uuid4())

    try:
        quote = manager.quote_price(
            _parse_dimension(height), _parse_dimension(width), material
        )
    except ValidationError as e:
        return _error_response(e, correlation_id)

    engine = manager.engine
    return PriceResponse(
        price=str(quote.total_price),
        formattedPrice=engine.format_price(quote.total_price),
        coefficient=str(quote.coefficient),
        area=quote.area,
        material=engine.material_name(material),
    )


@router.post(
    "/create-temp-product",
    response_model=CreateTempProductResponse,
    summary="Create or Reuse Temporary Product",
    description=(
        "Returns the shop's active temporary product for these dimensions, "
        "creating one when none exists. The price is always recomputed; a "
        "reused product keeps the variant price it was created with."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid dimensions or material (TPL-001)"},
        401: {"model": ErrorResponse, "description": "No shop session (TPL-002)"},
        502: {"model": ErrorResponse, "description": "Remote store failure (TPL-003/004/005)"},
        500: {"model": ErrorResponse, "description": "Ledger failure (TPL-006)"},
    },
)
def create_temp_product(
    height: Optional[str] = Form(None),
    width: Optional[str] = Form(None),
    material: Optional[str] = Form(None),
    image_url: Optional[str] = Form(None, alias="imageUrl"),
    manager: TempProductLifecycleManager = Depends(get_lifecycle_manager),
    provider: CapabilityProvider = Depends(get_capability_provider),
):
    correlation_id = str(uuid.uuid4())
    session = provider.get_session(correlation_id)

    try:
        outcome = manager.provision_or_reuse(
            shop=session.shop if session else None,
            capability=session.capability if session else None,
            height=_parse_dimension(height),
            width=_parse_dimension(width),
            material=material,
            image_url=image_url,
            correlation_id=correlation_id,
        )
    except TempProductError as e:
        return _error_response(e, correlation_id)

    record = outcome.record
    cart_item = prepare_cart_item(
        record.variant_id,
        properties={
            "Height": f"{record.height}mm",
            "Width": f"{record.width}mm",
            "Material": outcome.material_name,
        },
    )

    return CreateTempProductResponse(
        reused=outcome.reused,
        product=TempProductPayload(**outcome.to_dict()),
        cartItem=CartItem(**cart_item),
    )


# ============================================================================
# Cleanup Endpoints
# ============================================================================

@cleanup_router.post(
    "/cleanup-temp-products",
    response_model=CleanupResponse,
    summary="Sweep Expired Temporary Products",
    responses={
        401: {"model": ErrorResponse, "description": "Missing or wrong X-Cron-Secret (SEC-001/003)"},
        503: {"model": ErrorResponse, "description": "CRON_SECRET not configured (SEC-002)"},
    },
)
def cleanup_temp_products(
    x_cron_secret: Optional[str] = Header(None, alias=CRON_SECRET_HEADER),
    config: ServiceConfig = Depends(get_config),
    manager: TempProductLifecycleManager = Depends(get_lifecycle_manager),
    provider: CapabilityProvider = Depends(get_capability_provider),
):
    correlation_id = str(uuid.uuid4())

    try:
        verify_cron_secret(x_cron_secret, config.cron_secret)
    except CronSecretError as e:
        logger.warning(
            f"[{e.error_code}] Cleanup trigger rejected | "
            f"correlation_id={correlation_id}"
        )
        if e.error_code == "SEC-002":
            return _error_json(503, e.error_code, e.message, correlation_id)
        return _error_json(401, e.error_code, "Unauthorized", correlation_id)

    session = provider.get_session(correlation_id)

    try:
        report = manager.sweep_expired(
            session.capability if session else None,
            correlation_id=correlation_id,
        )
    except TempProductError as e:
        return _error_response(e, correlation_id)

    message = (
        "No expired products found" if report.is_noop
        else f"{report.deleted_count} products deleted"
    )
    return CleanupResponse(message=message, **report.to_dict())


@cleanup_router.get(
    "/cleanup-temp-products",
    summary="Cleanup Usage Hint",
    responses={403: {"description": "Not available in production"}},
)
def cleanup_usage(config: ServiceConfig = Depends(get_config)):
    if config.is_production:
        return JSONResponse(
            status_code=403,
            content={"success": False, "error": "Not available in production"},
        )

    return {
        "message": "Send a POST request to start a cleanup sweep",
        "example": {
            "method": "POST",
            "headers": {CRON_SECRET_HEADER: "<CRON_SECRET>"},
        },
    }


__all__ = [
    "router",
    "cleanup_router",
    "get_config",
    "get_lifecycle_manager",
    "reset_lifecycle_manager",
    "get_capability_provider",
    "reset_capability_provider",
    "PriceResponse",
    "CreateTempProductResponse",
    "CleanupResponse",
    "ErrorResponse",
]
