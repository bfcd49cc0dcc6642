# ============================================================================
# Dynamic Frame Pricing v1.0.0
# Authentication & Security Module
# ============================================================================

from app.auth.security import verify_cron_secret, CronSecretError, CRON_SECRET_HEADER
from app.auth.shop_session import ShopSession, CapabilityProvider, EnvCapabilityProvider

__all__ = [
    "verify_cron_secret",
    "CronSecretError",
    "CRON_SECRET_HEADER",
    "ShopSession",
    "CapabilityProvider",
    "EnvCapabilityProvider",
]
