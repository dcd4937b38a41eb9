"""
Rate pricing

cost = base_cost + per_kg_cost * weight, rounded to cents, or 0.0 when the
package's declared value reaches the rate's free shipping threshold.
"""
from shipping_engine.schemas.shipping import PackageInfo, ShippingRateSchema


def _within(value: float, low, high) -> bool:
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def rate_accepts_package(rate: ShippingRateSchema, package: PackageInfo) -> bool:
    """Check the rate's inclusive weight and order value bounds."""
    return (
        _within(package.weight, rate.min_weight, rate.max_weight)
        and _within(package.declared_value, rate.min_order_amount, rate.max_order_amount)
    )


def price_rate(rate: ShippingRateSchema, package: PackageInfo) -> float:
    if rate.free_shipping_threshold is not None and package.declared_value >= rate.free_shipping_threshold:
        return 0.0

    cost = (rate.base_cost or 0.0) + (rate.per_kg_cost or 0.0) * package.weight
    return max(0.0, round(cost, 2))
