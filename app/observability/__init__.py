"""
============================================================================
Dynamic Frame Pricing v1.0.0
Observability Module - Prometheus Metrics
============================================================================
"""

from app.observability.metrics import (
    PRICE_QUOTES,
    TEMP_PRODUCTS_PROVISIONED,
    TEMP_PRODUCTS_SWEPT,
    SWEEP_DURATION,
    record_price_quote,
    record_provision_outcome,
    record_sweep,
)

__all__ = [
    "PRICE_QUOTES",
    "TEMP_PRODUCTS_PROVISIONED",
    "TEMP_PRODUCTS_SWEPT",
    "SWEEP_DURATION",
    "record_price_quote",
    "record_provision_outcome",
    "record_sweep",
]
