"""
Restriction Validator

Checks a shipping method's weight limit and named restrictions against a
package (and, when known, the destination). Every violated rule is
reported, not just the first.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Callable, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

from shipping_engine.core.config import settings
from shipping_engine.core.utils import utcnow
from shipping_engine.models.carrier import ShippingMethod
from shipping_engine.modules.shipping.methods import SHIPPING_METHODS, ShippingMethodConfig
from shipping_engine.modules.shipping.restrictions import (
    BaseRestriction,
    RestrictionContext,
    get_restriction,
)
from shipping_engine.schemas.shipping import PackageInfo, ShippingAddress

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    ok: bool
    reasons: List[str] = field(default_factory=list)


def _resolve_timezone(name: str) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class RestrictionValidator:
    """
    Validates shipping method eligibility.

    Args:
        methods: Method catalogue (defaults to SHIPPING_METHODS)
        restrictions: Restriction instances by name; unnamed ones come
            from the registry
        clock: Returns the current aware datetime
        timezone_name: IANA zone the day and hour rules are evaluated in
    """

    def __init__(
        self,
        methods: Optional[Dict[ShippingMethod, ShippingMethodConfig]] = None,
        restrictions: Optional[Dict[str, BaseRestriction]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        timezone_name: Optional[str] = None,
    ):
        self.methods = methods if methods is not None else SHIPPING_METHODS
        self._restrictions: Dict[str, BaseRestriction] = dict(restrictions or {})
        self._clock = clock or utcnow
        self._tz = _resolve_timezone(
            settings.SHIPPING_TIMEZONE if timezone_name is None else timezone_name
        )

    def _get_restriction(self, name: str) -> Optional[BaseRestriction]:
        if name not in self._restrictions:
            restriction = get_restriction(name)
            if restriction is None:
                return None
            self._restrictions[name] = restriction
        return self._restrictions[name]

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self._tz)

    def validate(
        self,
        method: Union[ShippingMethod, str],
        package: PackageInfo,
        address: Optional[ShippingAddress] = None,
    ) -> ValidationResult:
        try:
            method = ShippingMethod(method)
        except ValueError:
            return ValidationResult(ok=False, reasons=[f"Unknown shipping method: {method}"])

        config = self.methods.get(method)
        if config is None:
            return ValidationResult(ok=False, reasons=[f"Unknown shipping method: {method.value}"])

        reasons: List[str] = []

        if package.weight > config.max_weight:
            reasons.append(
                f"Package weight {package.weight}kg exceeds the {config.max_weight}kg "
                f"maximum for {config.display_name}"
            )

        if config.restrictions:
            context = RestrictionContext(package=package, now=self._now(), address=address)
            for name in config.restrictions:
                restriction = self._get_restriction(name)
                if restriction is None:
                    logger.warning(f"[RESTRICTION] Unknown restriction '{name}' on {method.value}, skipping")
                    continue
                if not restriction.enforced:
                    logger.debug(f"[RESTRICTION] {name} not enforced yet (unconfigured)")
                    continue
                reason = restriction.check(context)
                if reason:
                    reasons.append(reason)

        return ValidationResult(ok=not reasons, reasons=reasons)
