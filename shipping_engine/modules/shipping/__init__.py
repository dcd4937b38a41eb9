"""
Shipping domain logic

Pure computation over schemas: zone resolution, method restrictions and
rate pricing. Persistence and caching live in the services layer.
"""
from shipping_engine.modules.shipping.methods import SHIPPING_METHODS, ShippingMethodConfig
from shipping_engine.modules.shipping.pricing import price_rate, rate_accepts_package
from shipping_engine.modules.shipping.validator import RestrictionValidator, ValidationResult
from shipping_engine.modules.shipping.zones import postal_code_matches, resolve_zone, zone_matches

__all__ = [
    "SHIPPING_METHODS",
    "ShippingMethodConfig",
    "price_rate",
    "rate_accepts_package",
    "RestrictionValidator",
    "ValidationResult",
    "postal_code_matches",
    "resolve_zone",
    "zone_matches",
]
