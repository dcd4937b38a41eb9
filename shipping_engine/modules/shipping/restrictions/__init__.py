"""
Restriction registry

Restrictions register themselves by name; method configurations refer to
them by that name.
"""
from typing import Dict, List, Optional, Type
import logging

from shipping_engine.modules.shipping.restrictions.base import BaseRestriction, RestrictionContext

logger = logging.getLogger(__name__)

_RESTRICTION_REGISTRY: Dict[str, Type[BaseRestriction]] = {}


def register_restriction(name: str):
    """
    Decorator to register a restriction implementation.

    Usage:
        @register_restriction("no_weekends")
        class NoWeekendsRestriction(BaseRestriction):
            ...
    """
    def decorator(cls: Type[BaseRestriction]):
        cls.name = name
        _RESTRICTION_REGISTRY[name] = cls
        logger.debug(f"Registered restriction: {name} -> {cls.__name__}")
        return cls
    return decorator


def get_restriction(name: str) -> Optional[BaseRestriction]:
    """Instantiate the restriction registered under name, or None."""
    restriction_cls = _RESTRICTION_REGISTRY.get(name)
    if not restriction_cls:
        return None
    return restriction_cls()


def get_registered_restrictions() -> List[str]:
    return list(_RESTRICTION_REGISTRY.keys())


# Imported last so the rules can use register_restriction
from shipping_engine.modules.shipping.restrictions.rules import (  # noqa: E402, F401
    NoWeekendsRestriction,
    SameCityRestriction,
    BusinessHoursRestriction,
    StoreHoursRestriction,
)

__all__ = [
    "BaseRestriction",
    "RestrictionContext",
    "register_restriction",
    "get_restriction",
    "get_registered_restrictions",
    "NoWeekendsRestriction",
    "SameCityRestriction",
    "BusinessHoursRestriction",
    "StoreHoursRestriction",
]
