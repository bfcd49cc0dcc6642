# ============================================================================
# Dynamic Frame Pricing v1.0.0
# API Routes Module
# ============================================================================

from app.api.pricing import router as pricing_router
from app.api.pricing import cleanup_router

__all__ = ["pricing_router", "cleanup_router"]
