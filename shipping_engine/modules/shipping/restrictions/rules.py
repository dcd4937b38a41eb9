"""
Concrete method restrictions

no_weekends is always enforced. same_city, business_hours and store_hours
become enforced once STORE_CITY, BUSINESS_HOURS and STORE_HOURS are set.
"""
from typing import Optional

from shipping_engine.core.config import settings, parse_hours_window
from shipping_engine.modules.shipping.restrictions import register_restriction
from shipping_engine.modules.shipping.restrictions.base import BaseRestriction, RestrictionContext

SATURDAY = 5


@register_restriction("no_weekends")
class NoWeekendsRestriction(BaseRestriction):

    @property
    def enforced(self) -> bool:
        return True

    def check(self, context: RestrictionContext) -> Optional[str]:
        if context.now.weekday() >= SATURDAY:
            return "Not available on weekends"
        return None


@register_restriction("same_city")
class SameCityRestriction(BaseRestriction):
    """Destination must be in the store's city."""

    def __init__(self, store_city: Optional[str] = None):
        city = settings.STORE_CITY if store_city is None else store_city
        self.store_city = city.strip()

    @property
    def enforced(self) -> bool:
        return bool(self.store_city)

    def check(self, context: RestrictionContext) -> Optional[str]:
        if not self.enforced:
            return None
        if context.address is None:
            return f"Destination address required for delivery within {self.store_city}"
        if context.address.city.casefold() != self.store_city.casefold():
            return f"Only available for deliveries within {self.store_city}"
        return None


class HoursWindowRestriction(BaseRestriction):
    """Current local time must fall in [start, end)."""
    label = "hours"

    def __init__(self, window: Optional[str] = None):
        self.window_text = (window or "").strip()
        self.window = parse_hours_window(self.window_text)

    @property
    def enforced(self) -> bool:
        return self.window is not None

    def check(self, context: RestrictionContext) -> Optional[str]:
        if not self.enforced:
            return None
        start, end = self.window
        current = (context.now.hour, context.now.minute)
        if not (start <= current < end):
            return f"Only available during {self.label} ({self.window_text})"
        return None


@register_restriction("business_hours")
class BusinessHoursRestriction(HoursWindowRestriction):
    label = "business hours"

    def __init__(self, window: Optional[str] = None):
        super().__init__(settings.BUSINESS_HOURS if window is None else window)


@register_restriction("store_hours")
class StoreHoursRestriction(HoursWindowRestriction):
    label = "store hours"

    def __init__(self, window: Optional[str] = None):
        super().__init__(settings.STORE_HOURS if window is None else window)
