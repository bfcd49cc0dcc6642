"""
============================================================================
Dynamic Frame Pricing - Pricing Engine
============================================================================

Reliability Level: L5 Critical
Decimal Integrity: All calculations use decimal.Decimal, ROUND_HALF_UP to 0.01
Side Effects: None (pure functions)

PRICE FORMULA:
    area        = height × width                       (mm²)
    coefficient = band[min, max) containing area
    price       = round2(area × coefficient / 10000 + material_unit_price)

Callers validate first: calculate_price() and get_coefficient() assume
in-contract inputs. quote() and build_spec() validate and raise.

============================================================================
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional, Union
import logging

from services.pricing_config import PricingConfig, DEFAULT_PRICING_CONFIG
from services.temp_product_models import (
    DimensionSpec,
    Material,
    PriceQuote,
    ValidationError,
    PRECISION_MONEY,
)

logger = logging.getLogger(__name__)


MaterialLike = Union[Material, str]


def _as_dimension(value: Any) -> Optional[int]:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _as_material(value: Any) -> Optional[Material]:
    if isinstance(value, Material):
        return value
    if isinstance(value, str):
        try:
            return Material(value)
        except ValueError:
            return None
    return None


class PricingEngine:
    """
    Deterministic price calculator over an injected PricingConfig.

    Example Usage:
        engine = PricingEngine()
        engine.validate_inputs(200, 300, "wood")   # []
        engine.calculate_price(200, 300, "wood")   # Decimal('56.00')
    """

    def __init__(self, config: Optional[PricingConfig] = None):
        self.config = config if config is not None else DEFAULT_PRICING_CONFIG

    # ========================================================================
    # Validation
    # ========================================================================

    def validate_inputs(self, height: Any, width: Any, material: Any) -> List[str]:
        """
        Validate raw inputs.

        All three checks run unconditionally, in order height, width,
        material, so every violated rule yields exactly one message.

        Returns:
            List of error messages (empty = valid)
        """
        cfg = self.config
        errors: List[str] = []

        h = _as_dimension(height)
        if h is None or h < cfg.min_dimension_mm or h > cfg.max_dimension_mm:
            errors.append(
                f"Height must be between {cfg.min_dimension_mm}mm "
                f"and {cfg.max_dimension_mm}mm"
            )

        w = _as_dimension(width)
        if w is None or w < cfg.min_dimension_mm or w > cfg.max_dimension_mm:
            errors.append(
                f"Width must be between {cfg.min_dimension_mm}mm "
                f"and {cfg.max_dimension_mm}mm"
            )

        m = _as_material(material)
        if m is None or m not in cfg.material_prices:
            errors.append("Please select a valid material")

        return errors

    def build_spec(self, height: Any, width: Any, material: Any) -> DimensionSpec:
        """
        Validate and freeze inputs into a DimensionSpec.

        Raises:
            ValidationError: With every violated-field message (TPL-001)
        """
        errors = self.validate_inputs(height, width, material)
        if errors:
            logger.debug(
                f"[PRICING] Validation failed | "
                f"height={height} | width={width} | material={material} | "
                f"errors={len(errors)}"
            )
            raise ValidationError(errors)
        return DimensionSpec(height=height, width=width, material=_as_material(material))

    # ========================================================================
    # Pricing
    # ========================================================================

    def get_coefficient(self, height: int, width: int) -> Decimal:
        """
        Coefficient of the first band containing height × width.

        Falls back to the last band's coefficient if no band matches.
        """
        area = height * width
        for band in self.config.bands:
            if band.contains(area):
                return band.coefficient
        return self.config.bands[-1].coefficient

    def material_unit_price(self, material: MaterialLike) -> Decimal:
        return self.config.material_prices[_as_material(material)]

    def calculate_price(self, height: int, width: int, material: MaterialLike) -> Decimal:
        """
        Total price rounded half-up to 2 decimal places.

        Returns:
            Decimal with exactly 2 fractional digits
        """
        area = Decimal(height * width)
        coefficient = self.get_coefficient(height, width)
        raw = area * coefficient / self.config.area_divisor + self.material_unit_price(material)
        return raw.quantize(PRECISION_MONEY, rounding=ROUND_HALF_UP)

    def quote(self, spec: DimensionSpec) -> PriceQuote:
        """Full price breakdown for a validated spec."""
        return PriceQuote(
            area=spec.area,
            coefficient=self.get_coefficient(spec.height, spec.width),
            material_unit_price=self.material_unit_price(spec.material),
            total_price=self.calculate_price(spec.height, spec.width, spec.material),
        )

    def quote_inputs(self, height: Any, width: Any, material: Any) -> PriceQuote:
        """
        Validate raw inputs and price them.

        Raises:
            ValidationError: If any input is out of contract (TPL-001)
        """
        return self.quote(self.build_spec(height, width, material))

    # ========================================================================
    # Display
    # ========================================================================

    def format_price(self, price: Union[Decimal, int, str]) -> str:
        """Format a price as e.g. "56.00 TL"."""
        value = Decimal(str(price)).quantize(PRECISION_MONEY, rounding=ROUND_HALF_UP)
        return f"{value} {self.config.currency_suffix}"

    def material_name(self, material: MaterialLike) -> str:
        return self.config.material_name(_as_material(material))


# ============================================================================
# Module-level convenience functions
# ============================================================================

_engine = PricingEngine()


def validate_inputs(height: Any, width: Any, material: Any) -> List[str]:
    """Module-level convenience function for input validation."""
    return _engine.validate_inputs(height, width, material)


def get_coefficient(height: int, width: int) -> Decimal:
    """Module-level convenience function for the band coefficient."""
    return _engine.get_coefficient(height, width)


def calculate_price(height: int, width: int, material: MaterialLike) -> Decimal:
    """Module-level convenience function for the total price."""
    return _engine.calculate_price(height, width, material)


def format_price(price: Union[Decimal, int, str]) -> str:
    """Module-level convenience function for price display."""
    return _engine.format_price(price)


__all__ = [
    "PricingEngine",
    "validate_inputs",
    "get_coefficient",
    "calculate_price",
    "format_price",
]
