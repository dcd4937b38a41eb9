"""
Base restriction interface

Each named method restriction (same_city, business_hours, ...) is a
strategy class registered by name. A restriction whose configuration is
missing reports enforced = False and never produces a reason.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shipping_engine.schemas.shipping import PackageInfo, ShippingAddress


@dataclass
class RestrictionContext:
    """Inputs a restriction may inspect."""
    package: PackageInfo
    now: datetime  # aware, in the shipping timezone
    address: Optional[ShippingAddress] = None


class BaseRestriction(ABC):
    name: str = ""

    @property
    @abstractmethod
    def enforced(self) -> bool:
        """False while the rule lacks the configuration it needs."""
        pass

    @abstractmethod
    def check(self, context: RestrictionContext) -> Optional[str]:
        """
        Evaluate the rule.

        Returns:
            Human-readable reason when violated, None otherwise
        """
        pass

    def __repr__(self):
        return f"<{self.__class__.__name__}(name={self.name}, enforced={self.enforced})>"
