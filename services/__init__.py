"""
============================================================================
Dynamic Frame Pricing - Services Layer
============================================================================

Pricing engine, temporary product ledger, lifecycle manager and the
cleanup worker.

Only dependency-free modules are re-exported here; import the lifecycle,
ledger and worker from their own modules.

Reliability Level: L5 Critical
============================================================================
"""

from services.temp_product_models import (
    TempProductErrorCode,
    TempProductError,
    ValidationError,
    AuthError,
    RemoteError,
    RemoteMutationError,
    RemoteEmptyResultError,
    RemoteTransportError,
    StoreError,
    ConfigurationError,
    Material,
    ProvisionState,
    DimensionSpec,
    PriceQuote,
    TempProductRecord,
    CreatedProduct,
    BulkDeleteResult,
    ProvisionOutcome,
    SweepReport,
)

from services.pricing_config import (
    PriceBand,
    PricingConfig,
    ServiceConfig,
    DEFAULT_PRICING_CONFIG,
    get_service_config,
    reset_service_config,
)

from services.pricing_engine import (
    PricingEngine,
    validate_inputs,
    get_coefficient,
    calculate_price,
    format_price,
)

__all__ = [
    # Errors
    "TempProductErrorCode",
    "TempProductError",
    "ValidationError",
    "AuthError",
    "RemoteError",
    "RemoteMutationError",
    "RemoteEmptyResultError",
    "RemoteTransportError",
    "StoreError",
    "ConfigurationError",
    # Models
    "Material",
    "ProvisionState",
    "DimensionSpec",
    "PriceQuote",
    "TempProductRecord",
    "CreatedProduct",
    "BulkDeleteResult",
    "ProvisionOutcome",
    "SweepReport",
    # Configuration
    "PriceBand",
    "PricingConfig",
    "ServiceConfig",
    "DEFAULT_PRICING_CONFIG",
    "get_service_config",
    "reset_service_config",
    # Pricing
    "PricingEngine",
    "validate_inputs",
    "get_coefficient",
    "calculate_price",
    "format_price",
]
