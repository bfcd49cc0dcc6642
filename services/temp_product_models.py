"""
============================================================================
Dynamic Frame Pricing - Core Data Models
============================================================================

Reliability Level: L5 Critical
Decimal Integrity: All money values use decimal.Decimal with ROUND_HALF_UP
Traceability: All operations include correlation_id for audit

This module defines the data models shared by the pricing engine, the
remote product gateway, the temporary product ledger and the lifecycle
manager:
- Material: fixed material catalogue
- DimensionSpec: validated (height, width, material) triple
- PriceQuote: derived price breakdown (never persisted)
- TempProductRecord: ledger row for one provisioned remote product
- CreatedProduct / BulkDeleteResult / SweepReport: gateway and sweep results
- TempProductError hierarchy with error codes

ERROR CODES:
    - TPL-001: Validation failed
    - TPL-002: No usable shop session / capability
    - TPL-003: Remote mutation reported user errors
    - TPL-004: Remote mutation returned no payload
    - TPL-005: Remote transport failure
    - TPL-006: Ledger store failure
    - TPL-007: Configuration invalid

============================================================================
"""

from decimal import Decimal
from typing import Optional, Dict, Any, List, Tuple, FrozenSet, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import logging

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Money precision (2 fractional digits)
PRECISION_MONEY = Decimal("0.01")

# Tags attached to every provisioned product
TEMP_PRODUCT_TAG = "temp-product"
AUTO_DELETE_TAG = "auto-delete"


# =============================================================================
# Error Codes
# =============================================================================

class TempProductErrorCode:
    """Error codes for audit logging."""
    VALIDATION_FAILED = "TPL-001"
    AUTH_REQUIRED = "TPL-002"
    REMOTE_MUTATION = "TPL-003"
    REMOTE_EMPTY_RESULT = "TPL-004"
    REMOTE_TRANSPORT = "TPL-005"
    STORE_FAILURE = "TPL-006"
    CONFIG_INVALID = "TPL-007"


# =============================================================================
# Exceptions
# =============================================================================

class TempProductError(Exception):
    """
    Base exception for the temporary product service.

    Every subclass carries an error_code and renders as "[CODE] message".
    """

    error_code = "TPL-000"

    def __init__(self, message: str, error_code: Optional[str] = None):
        if error_code is not None:
            self.error_code = error_code
        self.message = message
        super().__init__(f"[{self.error_code}] {message}")


class ValidationError(TempProductError):
    """One or more input fields out of contract (TPL-001)."""

    error_code = TempProductErrorCode.VALIDATION_FAILED

    def __init__(self, messages: Sequence[str]):
        self.messages: List[str] = list(messages)
        super().__init__(", ".join(self.messages))


class AuthError(TempProductError):
    """No usable shop session or admin capability (TPL-002)."""

    error_code = TempProductErrorCode.AUTH_REQUIRED


class RemoteError(TempProductError):
    """Base class for failures talking to the remote catalog API."""
    pass


class RemoteMutationError(RemoteError):
    """
    The remote API executed the request but reported user errors (TPL-003).

    Carries every field/message pair reported by the platform.
    """

    error_code = TempProductErrorCode.REMOTE_MUTATION

    def __init__(
        self,
        messages: Sequence[str],
        fields: Optional[Sequence[Optional[str]]] = None,
    ):
        if isinstance(messages, str):
            messages = [messages]
        self.messages: List[str] = list(messages) or ["Unknown remote error"]
        self.fields: List[Optional[str]] = list(fields) if fields else []
        super().__init__("; ".join(self.messages))


class RemoteEmptyResultError(RemoteError):
    """Mutation reported success but returned no product payload (TPL-004)."""

    error_code = TempProductErrorCode.REMOTE_EMPTY_RESULT


class RemoteTransportError(RemoteError):
    """The remote call itself failed: network, timeout, HTTP error (TPL-005)."""

    error_code = TempProductErrorCode.REMOTE_TRANSPORT


class StoreError(TempProductError):
    """The ledger's backing store failed (TPL-006)."""

    error_code = TempProductErrorCode.STORE_FAILURE


class ConfigurationError(TempProductError):
    """Configuration is missing or invalid (TPL-007)."""

    error_code = TempProductErrorCode.CONFIG_INVALID


# =============================================================================
# Enums
# =============================================================================

class Material(Enum):
    """
    Frame material catalogue.

    Membership is fixed; unit prices and display names live in PricingConfig.
    """
    WOOD = "wood"
    METAL = "metal"
    PLASTIC = "plastic"

    @classmethod
    def values(cls) -> List[str]:
        return [m.value for m in cls]


class ProvisionState(Enum):
    """
    Provisioning request lifecycle.

        RECEIVED → VALIDATED → REUSED | CREATED
        any → REJECTED (error)

    Terminal states: REUSED, CREATED, REJECTED
    """
    RECEIVED = "RECEIVED"
    VALIDATED = "VALIDATED"
    REUSED = "REUSED"
    CREATED = "CREATED"
    REJECTED = "REJECTED"


# =============================================================================
# Value Objects
# =============================================================================

@dataclass(frozen=True)
class DimensionSpec:
    """
    Validated custom dimensions.

    Construct through pricing_engine.build_spec() so that the bounds and
    material membership are enforced. Immutable once built.
    """
    height: int
    width: int
    material: Material

    @property
    def area(self) -> int:
        return self.height * self.width

    def to_dict(self) -> Dict[str, Any]:
        return {
            "height": self.height,
            "width": self.width,
            "material": self.material.value,
        }


@dataclass(frozen=True)
class PriceQuote:
    """Price breakdown derived from a DimensionSpec. Always recomputed."""
    area: int
    coefficient: Decimal
    material_unit_price: Decimal
    total_price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "area": self.area,
            "coefficient": str(self.coefficient),
            "material_unit_price": str(self.material_unit_price),
            "total_price": str(self.total_price),
        }


@dataclass
class TempProductRecord:
    """
    One provisioned remote product tied to a shop.

    ============================================================================
    LIFECYCLE:
    ============================================================================
    - Inserted by the lifecycle manager after a confirmed remote create
    - Read for dedup lookups and by the expiry sweep
    - Mutated exactly once: deleted False → True (by the sweep)
    - Never hard-deleted; delete_at = created_at + TTL, never recomputed
    ============================================================================
    """
    id: str
    shop: str
    product_id: str
    variant_id: str
    height: int
    width: int
    material: str
    price: Decimal
    created_at: datetime
    delete_at: datetime
    deleted: bool = False

    def matches(self, shop: str, spec: DimensionSpec) -> bool:
        """Exact match on shop and dimensions; no tolerance."""
        return (
            self.shop == shop
            and self.height == spec.height
            and self.width == spec.width
            and self.material == spec.material.value
        )

    def is_active(self, now: datetime) -> bool:
        return not self.deleted and self.delete_at > now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shop": self.shop,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "height": self.height,
            "width": self.width,
            "material": self.material,
            "price": str(self.price),
            "created_at": self.created_at.isoformat(),
            "delete_at": self.delete_at.isoformat(),
            "deleted": self.deleted,
        }


@dataclass(frozen=True)
class CreatedProduct:
    """Result of a successful remote product creation."""
    remote_product_id: str
    remote_variant_id: str
    title: str
    handle: Optional[str] = None
    public_url: Optional[str] = None


@dataclass(frozen=True)
class BulkDeleteResult:
    """
    Exhaustive partition of a bulk delete.

    succeeded ∪ {id for id, _ in failed} == input ids, and the two are disjoint.
    """
    succeeded: FrozenSet[str] = frozenset()
    failed: Tuple[Tuple[str, str], ...] = ()

    @property
    def failed_ids(self) -> FrozenSet[str]:
        return frozenset(remote_id for remote_id, _ in self.failed)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    def with_success(self, remote_id: str) -> "BulkDeleteResult":
        return BulkDeleteResult(self.succeeded | {remote_id}, self.failed)

    def with_failure(self, remote_id: str, message: str) -> "BulkDeleteResult":
        return BulkDeleteResult(self.succeeded, self.failed + ((remote_id, message),))


@dataclass
class ProvisionOutcome:
    """
    Result of provision_or_reuse().

    The quote is always freshly computed; for a REUSED record the remote
    variant keeps the price fixed at its original creation.
    """
    state: ProvisionState
    record: TempProductRecord
    quote: PriceQuote
    title: str
    material_name: str
    public_url: Optional[str] = None
    correlation_id: Optional[str] = None

    @property
    def reused(self) -> bool:
        return self.state == ProvisionState.REUSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.record.id,
            "productId": self.record.product_id,
            "variantId": self.record.variant_id,
            "title": self.title,
            "price": str(self.quote.total_price),
            "height": self.record.height,
            "width": self.record.width,
            "material": self.material_name,
            "publicUrl": self.public_url,
            "deleteAt": self.record.delete_at.isoformat(),
        }


@dataclass
class SweepReport:
    """Outcome of one expiry sweep."""
    deleted_count: int = 0
    failed_count: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    correlation_id: Optional[str] = None

    @property
    def is_noop(self) -> bool:
        return self.deleted_count == 0 and self.failed_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deleted": self.deleted_count,
            "failed": self.failed_count,
            "errors": list(self.errors),
        }


__all__ = [
    "PRECISION_MONEY",
    "TEMP_PRODUCT_TAG",
    "AUTO_DELETE_TAG",
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
    "Material",
    "ProvisionState",
    "DimensionSpec",
    "PriceQuote",
    "TempProductRecord",
    "CreatedProduct",
    "BulkDeleteResult",
    "ProvisionOutcome",
    "SweepReport",
]
