"""
============================================================================
Dynamic Frame Pricing - Configuration
============================================================================

Reliability Level: L5 Critical
Decimal Integrity: All prices and coefficients are decimal.Decimal

This module provides two configuration objects:
- PricingConfig: immutable pricing table, dimension bounds and TTL,
  injected into the pricing engine and the lifecycle manager
- ServiceConfig: deployment settings loaded from environment variables

ENVIRONMENT VARIABLES:
    - SHOPIFY_SHOP_DOMAIN: Shop domain (e.g. example.myshopify.com)
    - SHOPIFY_ADMIN_ACCESS_TOKEN: Admin API access token
    - SHOPIFY_API_VERSION: Admin API version (default: 2024-10)
    - DATABASE_URL: read by app.database.session (default: sqlite:///./temp_products.db)
    - CRON_SECRET: Shared secret for the cleanup endpoint
    - APP_ENV: development | production (default: development)
    - CLEANUP_WORKER_ENABLED: Run the in-process sweep loop (default: false)
    - CLEANUP_INTERVAL_SECONDS: Sweep interval (default: 600)
    - TEMP_PRODUCT_TTL_SECONDS: Temporary product lifetime (default: 7200)

ERROR CODES:
    - TPL-007: Configuration invalid

============================================================================
"""

from decimal import Decimal
from datetime import timedelta
from typing import Optional, Dict, List, Tuple
from dataclasses import dataclass, field
import logging
import os

from dotenv import load_dotenv

from services.temp_product_models import ConfigurationError, Material

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Default Values
# =============================================================================

DEFAULT_MATERIAL_PRICES: Dict[Material, Decimal] = {
    Material.WOOD: Decimal("50"),
    Material.METAL: Decimal("100"),
    Material.PLASTIC: Decimal("30"),
}

DEFAULT_MATERIAL_NAMES: Dict[Material, str] = {
    Material.WOOD: "Wood",
    Material.METAL: "Metal",
    Material.PLASTIC: "Plastic",
}

# (min_area, max_area, coefficient); max_area None = unbounded
DEFAULT_PRICE_BANDS: Tuple[Tuple[int, Optional[int], Decimal], ...] = (
    (0, 100000, Decimal("1.0")),
    (100000, 200000, Decimal("1.2")),
    (200000, 300000, Decimal("1.5")),
    (300000, None, Decimal("2.0")),
)

DEFAULT_MIN_DIMENSION_MM = 100
DEFAULT_MAX_DIMENSION_MM = 5000

# Area is divided by this before the coefficient is applied
DEFAULT_AREA_DIVISOR = Decimal("10000")

DEFAULT_TTL = timedelta(hours=2)

DEFAULT_CURRENCY_SUFFIX = "TL"

DEFAULT_SHOPIFY_API_VERSION = "2024-10"
DEFAULT_DATABASE_URL = "sqlite:///./temp_products.db"
DEFAULT_CLEANUP_INTERVAL_SECONDS = 600
INSECURE_CRON_SECRET = "change-me-in-production-to-secure-random-token"


# =============================================================================
# PricingConfig
# =============================================================================

@dataclass(frozen=True)
class PriceBand:
    """Half-open area band [min_area, max_area) with its coefficient."""
    min_area: int
    max_area: Optional[int]
    coefficient: Decimal

    def contains(self, area: int) -> bool:
        if area < self.min_area:
            return False
        return self.max_area is None or area < self.max_area


def _default_bands() -> Tuple[PriceBand, ...]:
    return tuple(PriceBand(lo, hi, coeff) for lo, hi, coeff in DEFAULT_PRICE_BANDS)


@dataclass(frozen=True)
class PricingConfig:
    """
    Immutable pricing configuration.

    ============================================================================
    PARAMETERS:
    ============================================================================
    - material_prices: unit price per material (added after area pricing)
    - material_names: display names used in product titles
    - bands: ordered coefficient bands, last one unbounded
    - min_dimension_mm / max_dimension_mm: inclusive bounds for h and w
    - area_divisor: area scaling before the coefficient
    - ttl: lifetime of a provisioned temporary product
    - currency_suffix: display suffix for format_price()
    ============================================================================
    """
    material_prices: Dict[Material, Decimal] = field(
        default_factory=lambda: dict(DEFAULT_MATERIAL_PRICES)
    )
    material_names: Dict[Material, str] = field(
        default_factory=lambda: dict(DEFAULT_MATERIAL_NAMES)
    )
    bands: Tuple[PriceBand, ...] = field(default_factory=_default_bands)
    min_dimension_mm: int = DEFAULT_MIN_DIMENSION_MM
    max_dimension_mm: int = DEFAULT_MAX_DIMENSION_MM
    area_divisor: Decimal = DEFAULT_AREA_DIVISOR
    ttl: timedelta = DEFAULT_TTL
    currency_suffix: str = DEFAULT_CURRENCY_SUFFIX

    def validate(self) -> "PricingConfig":
        """
        Check internal consistency.

        Raises:
            ConfigurationError: On any inconsistency (TPL-007)
        """
        errors: List[str] = []

        if not self.bands:
            errors.append("price band table must not be empty")
        elif self.bands[-1].max_area is not None:
            errors.append("last price band must be unbounded")

        if self.min_dimension_mm > self.max_dimension_mm:
            errors.append(
                f"min_dimension_mm ({self.min_dimension_mm}) exceeds "
                f"max_dimension_mm ({self.max_dimension_mm})"
            )

        if self.ttl <= timedelta(0):
            errors.append(f"ttl must be positive, got: {self.ttl}")

        if self.area_divisor <= 0:
            errors.append(f"area_divisor must be positive, got: {self.area_divisor}")

        missing = [m.value for m in Material if m not in self.material_prices]
        if missing:
            errors.append(f"missing unit price for: {', '.join(missing)}")

        if errors:
            error_msg = "Pricing configuration invalid: " + "; ".join(errors)
            logger.error(f"[{ConfigurationError.error_code}] {error_msg}")
            raise ConfigurationError(error_msg)

        return self

    def material_name(self, material: Material) -> str:
        return self.material_names.get(material, material.value.capitalize())


DEFAULT_PRICING_CONFIG = PricingConfig()


# =============================================================================
# ServiceConfig
# =============================================================================

def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.lower().strip() in ("true", "1", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(
            f"[SERVICE-CONFIG] Invalid {name} value: {raw}, "
            f"using default: {default}"
        )
        return default


@dataclass
class ServiceConfig:
    """
    Deployment configuration.

    Loaded once per process through get_service_config().
    """
    shop_domain: Optional[str] = None
    admin_access_token: Optional[str] = None
    api_version: str = DEFAULT_SHOPIFY_API_VERSION
    cron_secret: str = INSECURE_CRON_SECRET
    app_env: str = "development"
    cleanup_worker_enabled: bool = False
    cleanup_interval_seconds: int = DEFAULT_CLEANUP_INTERVAL_SECONDS
    ttl_seconds: int = int(DEFAULT_TTL.total_seconds())

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def has_admin_credentials(self) -> bool:
        return bool(self.shop_domain) and bool(self.admin_access_token)

    def pricing_config(self) -> PricingConfig:
        """PricingConfig with this deployment's TTL."""
        return PricingConfig(ttl=timedelta(seconds=self.ttl_seconds)).validate()

    def validate(self) -> None:
        """
        Validate deployment settings.

        Raises:
            ConfigurationError: If settings are unusable (TPL-007)
        """
        errors: List[str] = []

        if self.cleanup_interval_seconds <= 0:
            errors.append(
                f"CLEANUP_INTERVAL_SECONDS must be positive, "
                f"got: {self.cleanup_interval_seconds}"
            )

        if self.ttl_seconds <= 0:
            errors.append(
                f"TEMP_PRODUCT_TTL_SECONDS must be positive, got: {self.ttl_seconds}"
            )

        if self.is_production and (
            not self.cron_secret or self.cron_secret == INSECURE_CRON_SECRET
        ):
            errors.append("CRON_SECRET must be set to a private value in production")

        if errors:
            error_msg = "Service configuration validation failed: " + "; ".join(errors)
            logger.error(f"[{ConfigurationError.error_code}] {error_msg}")
            raise ConfigurationError(error_msg)

        logger.info(
            f"[SERVICE-CONFIG] Configuration validated | "
            f"app_env={self.app_env} | "
            f"shop_domain={self.shop_domain} | "
            f"api_version={self.api_version} | "
            f"credentials={self.has_admin_credentials} | "
            f"cleanup_worker_enabled={self.cleanup_worker_enabled} | "
            f"ttl_seconds={self.ttl_seconds}"
        )

    @classmethod
    def from_environment(cls, validate: bool = True) -> "ServiceConfig":
        """
        Load configuration from environment variables (and a .env file).

        Raises:
            ConfigurationError: If validation is requested and fails
        """
        load_dotenv()

        config = cls(
            shop_domain=os.environ.get("SHOPIFY_SHOP_DOMAIN") or None,
            admin_access_token=os.environ.get("SHOPIFY_ADMIN_ACCESS_TOKEN") or None,
            api_version=os.environ.get("SHOPIFY_API_VERSION", DEFAULT_SHOPIFY_API_VERSION),
            cron_secret=os.environ.get("CRON_SECRET", INSECURE_CRON_SECRET),
            app_env=os.environ.get("APP_ENV", "development").strip(),
            cleanup_worker_enabled=_env_bool("CLEANUP_WORKER_ENABLED", False),
            cleanup_interval_seconds=_env_int(
                "CLEANUP_INTERVAL_SECONDS", DEFAULT_CLEANUP_INTERVAL_SECONDS
            ),
            ttl_seconds=_env_int(
                "TEMP_PRODUCT_TTL_SECONDS", int(DEFAULT_TTL.total_seconds())
            ),
        )

        if validate:
            config.validate()

        return config

    def to_dict(self) -> dict:
        """Serializable view with the secrets redacted."""
        return {
            "shop_domain": self.shop_domain,
            "admin_access_token": "***" if self.admin_access_token else None,
            "api_version": self.api_version,
            "cron_secret": "***",
            "app_env": self.app_env,
            "cleanup_worker_enabled": self.cleanup_worker_enabled,
            "cleanup_interval_seconds": self.cleanup_interval_seconds,
            "ttl_seconds": self.ttl_seconds,
        }


# =============================================================================
# Module-Level Configuration Instance
# =============================================================================

_config_instance: Optional[ServiceConfig] = None


def get_service_config(validate: bool = True) -> ServiceConfig:
    """Get the process-wide ServiceConfig, loading it on first access."""
    global _config_instance

    if _config_instance is None:
        _config_instance = ServiceConfig.from_environment(validate=validate)

    return _config_instance


def reset_service_config() -> None:
    """Reset the global ServiceConfig (for testing)."""
    global _config_instance
    _config_instance = None
    logger.debug("[SERVICE-CONFIG] Configuration instance reset")


__all__ = [
    "PriceBand",
    "PricingConfig",
    "DEFAULT_PRICING_CONFIG",
    "ServiceConfig",
    "get_service_config",
    "reset_service_config",
    "DEFAULT_TTL",
    "INSECURE_CRON_SECRET",
]
