"""
============================================================================
Dynamic Frame Pricing v1.0.0
Prometheus Metrics
============================================================================

Reliability Level: STANDARD
Side Effects: Updates Prometheus metrics registry

METRICS EXPOSED
---------------
- price_quotes_total: Counter of computed quotes by material
- temp_products_provisioned_total: Provisioning outcomes (created/reused/rejected)
- temp_products_swept_total: Sweep results per product (deleted/failed)
- temp_product_sweep_seconds: Sweep duration histogram

Metric failures are logged and never break the calling operation.

============================================================================
"""

import logging
from typing import Optional

from prometheus_client import Counter, Histogram

# Configure module logger
logger = logging.getLogger(__name__)


# ============================================================================
# PROMETHEUS METRICS DEFINITIONS
# ============================================================================

PRICE_QUOTES = Counter(
    "price_quotes_total",
    "Total number of price quotes computed",
    ["material"]
)

TEMP_PRODUCTS_PROVISIONED = Counter(
    "temp_products_provisioned_total",
    "Temporary product provisioning requests by outcome",
    ["outcome"]
)

TEMP_PRODUCTS_SWEPT = Counter(
    "temp_products_swept_total",
    "Expired temporary products processed by the sweep",
    ["result"]
)

SWEEP_DURATION = Histogram(
    "temp_product_sweep_seconds",
    "Duration of one expiry sweep",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0]
)


# ============================================================================
# METRIC UPDATE FUNCTIONS
# ============================================================================

def record_price_quote(material: str, correlation_id: Optional[str] = None) -> None:
    """Count one computed price quote."""
    try:
        PRICE_QUOTES.labels(material=material).inc()
        logger.debug(
            "Metric: price_quote | material=%s | correlation_id=%s",
            material, correlation_id
        )
    except Exception as e:
        logger.error("[OBS-001] Failed to record price_quote metric | error=%s", str(e))


def record_provision_outcome(outcome: str, correlation_id: Optional[str] = None) -> None:
    """
    Count one provisioning request.

    Args:
        outcome: "created", "reused" or "rejected"
        correlation_id: Optional tracking ID
    """
    try:
        TEMP_PRODUCTS_PROVISIONED.labels(outcome=outcome).inc()
        logger.debug(
            "Metric: provision_outcome | outcome=%s | correlation_id=%s",
            outcome, correlation_id
        )
    except Exception as e:
        logger.error("[OBS-002] Failed to record provision metric | error=%s", str(e))


def record_sweep(
    deleted: int,
    failed: int,
    duration_seconds: float,
    correlation_id: Optional[str] = None
) -> None:
    """Record the outcome and duration of one sweep."""
    try:
        if deleted:
            TEMP_PRODUCTS_SWEPT.labels(result="deleted").inc(deleted)
        if failed:
            TEMP_PRODUCTS_SWEPT.labels(result="failed").inc(failed)
        SWEEP_DURATION.observe(duration_seconds)
        logger.debug(
            "Metric: sweep | deleted=%s | failed=%s | duration=%.3fs | correlation_id=%s",
            deleted, failed, duration_seconds, correlation_id
        )
    except Exception as e:
        logger.error("[OBS-003] Failed to record sweep metric | error=%s", str(e))
