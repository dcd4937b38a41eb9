"""
Shipping method catalogue

Method-wide limits that apply regardless of carrier: maximum package
weight and the named restrictions checked by the RestrictionValidator.
"""
from dataclasses import dataclass, field
from typing import Dict, Tuple

from shipping_engine.models.carrier import ShippingMethod


@dataclass(frozen=True)
class ShippingMethodConfig:
    display_name: str
    min_days: int
    max_days: int
    max_weight: float  # kg
    restrictions: Tuple[str, ...] = field(default_factory=tuple)


SHIPPING_METHODS: Dict[ShippingMethod, ShippingMethodConfig] = {
    ShippingMethod.STANDARD: ShippingMethodConfig(
        display_name="Standard Shipping",
        min_days=3,
        max_days=7,
        max_weight=30,
    ),
    ShippingMethod.EXPRESS: ShippingMethodConfig(
        display_name="Express Shipping",
        min_days=1,
        max_days=3,
        max_weight=20,
        restrictions=("no_weekends",),
    ),
    ShippingMethod.SAME_DAY: ShippingMethodConfig(
        display_name="Same-Day Delivery",
        min_days=0,
        max_days=1,
        max_weight=10,
        restrictions=("same_city", "business_hours"),
    ),
    ShippingMethod.PICKUP: ShippingMethodConfig(
        display_name="Store Pickup",
        min_days=0,
        max_days=2,
        max_weight=50,
        restrictions=("store_hours",),
    ),
}
