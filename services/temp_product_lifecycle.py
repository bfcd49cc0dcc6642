"""
============================================================================
Temporary Product Lifecycle Manager
============================================================================

Reliability Level: L5 Critical
Decimal Integrity: Prices come from PricingEngine (ROUND_HALF_UP, 0.01)
Traceability: All operations include correlation_id for audit

PROVISIONING STATE MACHINE:
    RECEIVED → VALIDATED       (inputs within contract)
    RECEIVED → REJECTED        (auth or validation failure)
    VALIDATED → REUSED         (active ledger match within TTL)
    VALIDATED → CREATED        (remote create succeeded, ledger written)
    VALIDATED → REJECTED       (remote or store failure)

    Terminal States: REUSED, CREATED, REJECTED

SEQUENCING:
    Remote create must succeed strictly before the ledger insert. If the
    insert then fails the remote product is orphaned: logged with its id
    and the StoreError propagated. No compensating delete is attempted.

CONCURRENCY:
    No in-process locks or caches; every decision re-reads the ledger.
    Two concurrent requests for the same shop+spec may both miss and both
    create. The outcome is a duplicate remote product, never corruption;
    both records expire and are swept normally.

SWEEP:
    find_expired → bulk_delete → mark_deleted(succeeded) → SweepReport.
    Failures stay deleted = false and are retried by the next sweep.

ERROR CODES:
    - TPL-001 .. TPL-006 (see services.temp_product_models)
    - TPL-010: Invalid state transition

============================================================================
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging
import time
import uuid

from app.observability.metrics import (
    record_price_quote,
    record_provision_outcome,
    record_sweep,
)
from app.storefront.admin_client import AdminCapability
from app.storefront.product_gateway import (
    RemoteProductGateway,
    render_description_html,
    render_title,
)
from services.pricing_engine import PricingEngine
from services.temp_product_ledger import TempProductLedger
from services.temp_product_models import (
    AuthError,
    DimensionSpec,
    PriceQuote,
    ProvisionOutcome,
    ProvisionState,
    StoreError,
    SweepReport,
    TempProductError,
    ValidationError,
)

# Configure module logger
logger = logging.getLogger(__name__)


INVALID_TRANSITION = "TPL-010"

VALID_TRANSITIONS: Dict[ProvisionState, List[ProvisionState]] = {
    ProvisionState.RECEIVED: [ProvisionState.VALIDATED, ProvisionState.REJECTED],
    ProvisionState.VALIDATED: [
        ProvisionState.REUSED,
        ProvisionState.CREATED,
        ProvisionState.REJECTED,
    ],
    ProvisionState.REUSED: [],
    ProvisionState.CREATED: [],
    ProvisionState.REJECTED: [],
}

TERMINAL_STATES = [ProvisionState.REUSED, ProvisionState.CREATED, ProvisionState.REJECTED]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _ProvisionRun:
    """Tracks one request through the provisioning state machine."""

    def __init__(self, shop: str, correlation_id: str):
        self.shop = shop
        self.correlation_id = correlation_id
        self.state = ProvisionState.RECEIVED

    def advance(self, target: ProvisionState) -> None:
        if target not in VALID_TRANSITIONS[self.state]:
            logger.error(
                f"[{INVALID_TRANSITION}] Invalid transition | "
                f"{self.state.value} -> {target.value} | "
                f"correlation_id={self.correlation_id}"
            )
            raise RuntimeError(
                f"{INVALID_TRANSITION}: {self.state.value} -> {target.value}"
            )
        logger.debug(
            f"[TEMP-PRODUCT] {self.state.value} -> {target.value} | "
            f"shop={self.shop} | correlation_id={self.correlation_id}"
        )
        self.state = target


class TempProductLifecycleManager:
    """
    Orchestrates dedup-or-create provisioning and the expiry sweep.

    Example Usage:
        manager = TempProductLifecycleManager(ledger=SqlTempProductLedger())
        outcome = manager.provision_or_reuse(session.shop, session.capability,
                                             200, 300, "wood")
        report = manager.sweep_expired(session.capability)
    """

    def __init__(
        self,
        ledger: TempProductLedger,
        gateway: Optional[RemoteProductGateway] = None,
        engine: Optional[PricingEngine] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.ledger = ledger
        self.gateway = gateway if gateway is not None else RemoteProductGateway()
        self.engine = engine if engine is not None else PricingEngine()
        self.clock = clock

        logger.info(
            f"[TEMP-PRODUCT] Lifecycle manager initialized | "
            f"ttl_seconds={int(self.engine.config.ttl.total_seconds())}"
        )

    @property
    def ttl(self):
        return self.engine.config.ttl

    # =========================================================================
    # Pricing
    # =========================================================================

    def quote_price(self, height: Any, width: Any, material: Any) -> PriceQuote:
        """
        Validate inputs and compute a fresh quote.

        Raises:
            ValidationError: If any input is out of contract (TPL-001)
        """
        quote = self.engine.quote_inputs(height, width, material)
        record_price_quote(str(material))
        return quote

    # =========================================================================
    # Provisioning
    # =========================================================================

    def provision_or_reuse(
        self,
        shop: Optional[str],
        capability: Optional[AdminCapability],
        height: Any,
        width: Any,
        material: Any,
        image_url: Optional[str] = None,
        now: Optional[datetime] = None,
        correlation_id: Optional[str] = None,
    ) -> ProvisionOutcome:
        """
        Return an active temporary product for shop+dimensions, creating one
        on a ledger miss.

        ========================================================================
        PROCEDURE:
        ========================================================================
        1. Reject without a shop or capability (AuthError)
        2. Validate inputs (ValidationError, no side effects)
        3. ledger.find_active(); hit → REUSED with a freshly computed quote
        4. miss → gateway.create_product(); then ledger.insert() with
           delete_at = now + ttl → CREATED
        ========================================================================

        Raises:
            AuthError: No shop session or capability (TPL-002)
            ValidationError: Inputs out of contract (TPL-001)
            RemoteError: Remote create failed; nothing was written (TPL-003/4/5)
            StoreError: Ledger failure; after a remote create this orphans
                the remote product (TPL-006)
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        run = _ProvisionRun(shop or "", correlation_id)

        try:
            if not shop or capability is None:
                raise AuthError("A shop session with admin access is required")

            spec = self.engine.build_spec(height, width, material)
            run.advance(ProvisionState.VALIDATED)

            now = now or self.clock()
            quote = self.engine.quote(spec)
            material_name = self.engine.material_name(spec.material)
            title = render_title(spec, material_name)

            existing = self.ledger.find_active(shop, spec, now)
            if existing is not None:
                run.advance(ProvisionState.REUSED)
                logger.info(
                    f"[TEMP-PRODUCT] Reusing existing product | "
                    f"shop={shop} | product_id={existing.product_id} | "
                    f"delete_at={existing.delete_at.isoformat()} | "
                    f"correlation_id={correlation_id}"
                )
                record_provision_outcome("reused", correlation_id)
                return ProvisionOutcome(
                    state=run.state,
                    record=existing,
                    quote=quote,
                    title=title,
                    material_name=material_name,
                    correlation_id=correlation_id,
                )

            outcome = self._create(run, shop, capability, spec, quote, title,
                                   material_name, image_url, now)
            record_provision_outcome("created", correlation_id)
            return outcome

        except TempProductError as e:
            if run.state not in TERMINAL_STATES:
                run.advance(ProvisionState.REJECTED)
            level = logging.INFO if isinstance(e, (ValidationError, AuthError)) else logging.ERROR
            logger.log(
                level,
                f"[{e.error_code}] Provisioning rejected | shop={shop} | "
                f"error={e.message} | correlation_id={correlation_id}"
            )
            record_provision_outcome("rejected", correlation_id)
            raise

    def _create(
        self,
        run: _ProvisionRun,
        shop: str,
        capability: AdminCapability,
        spec: DimensionSpec,
        quote: PriceQuote,
        title: str,
        material_name: str,
        image_url: Optional[str],
        now: datetime,
    ) -> ProvisionOutcome:
        description_html = render_description_html(
            spec, material_name, quote.total_price, self.engine.config.currency_suffix
        )

        created = self.gateway.create_product(
            capability,
            spec,
            quote.total_price,
            title,
            description_html,
            image_url,
        )

        delete_at = now + self.ttl
        try:
            record = self.ledger.insert(
                shop=shop,
                product_id=created.remote_product_id,
                variant_id=created.remote_variant_id,
                spec=spec,
                price=quote.total_price,
                created_at=now,
                delete_at=delete_at,
            )
        except StoreError:
            logger.error(
                f"[{StoreError.error_code}] Orphaned remote product | "
                f"shop={shop} | product_id={created.remote_product_id} | "
                f"variant_id={created.remote_variant_id} | "
                f"correlation_id={run.correlation_id}"
            )
            raise

        run.advance(ProvisionState.CREATED)
        logger.info(
            f"[TEMP-PRODUCT] Created | shop={shop} | "
            f"product_id={record.product_id} | title={created.title} | "
            f"price={quote.total_price} | delete_at={delete_at.isoformat()} | "
            f"correlation_id={run.correlation_id}"
        )

        return ProvisionOutcome(
            state=run.state,
            record=record,
            quote=quote,
            title=created.title,
            material_name=material_name,
            public_url=created.public_url,
            correlation_id=run.correlation_id,
        )

    # =========================================================================
    # Expiry Sweep
    # =========================================================================

    def sweep_expired(
        self,
        capability: Optional[AdminCapability],
        now: Optional[datetime] = None,
        shop: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> SweepReport:
        """
        Delete expired temporary products remotely and mark them locally.

        ========================================================================
        PROCEDURE:
        ========================================================================
        1. ledger.find_expired(now, shop); empty → zero-work report
        2. gateway.bulk_delete() over their remote product ids
        3. ledger.mark_deleted() for exactly the records whose remote delete
           succeeded
        4. Report counts and per-id failure reasons; failures are not
           retried within this sweep
        ========================================================================

        Raises:
            AuthError: No capability (TPL-002)
            StoreError: Ledger failure (TPL-006)
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        if capability is None:
            raise AuthError("Admin access is required to sweep expired products")

        now = now or self.clock()
        started = time.monotonic()

        expired = self.ledger.find_expired(now, shop)
        if not expired:
            logger.debug(
                f"[CLEANUP] No expired products | shop={shop or 'ALL'} | "
                f"correlation_id={correlation_id}"
            )
            record_sweep(0, 0, time.monotonic() - started, correlation_id)
            return SweepReport(correlation_id=correlation_id)

        logger.info(
            f"[CLEANUP] Sweeping expired products | count={len(expired)} | "
            f"shop={shop or 'ALL'} | correlation_id={correlation_id}"
        )

        record_ids_by_product: Dict[str, List[str]] = {}
        for record in expired:
            record_ids_by_product.setdefault(record.product_id, []).append(record.id)

        result = self.gateway.bulk_delete(capability, list(record_ids_by_product))

        to_mark = [
            record_id
            for product_id in result.succeeded
            for record_id in record_ids_by_product[product_id]
        ]
        if to_mark:
            self.ledger.mark_deleted(to_mark)

        report = SweepReport(
            deleted_count=len(result.succeeded),
            failed_count=len(result.failed),
            errors=[{"id": product_id, "error": message} for product_id, message in result.failed],
            correlation_id=correlation_id,
        )

        record_sweep(
            report.deleted_count,
            report.failed_count,
            time.monotonic() - started,
            correlation_id,
        )

        if report.failed_count:
            logger.error(
                f"[CLEANUP] Sweep finished with failures | "
                f"deleted={report.deleted_count} | failed={report.failed_count} | "
                f"errors={report.errors} | correlation_id={correlation_id}"
            )
        else:
            logger.info(
                f"[CLEANUP] Sweep complete | deleted={report.deleted_count} | "
                f"correlation_id={correlation_id}"
            )

        return report


__all__ = [
    "TempProductLifecycleManager",
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
]
