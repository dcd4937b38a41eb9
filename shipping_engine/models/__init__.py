from shipping_engine.models.carrier import Carrier, CarrierService, ShippingMethod
from shipping_engine.models.zone import ShippingZone
from shipping_engine.models.rate import ShippingRate
from shipping_engine.models.shipment import (
    Shipment,
    ShipmentStatus,
    VALID_SHIPMENT_TRANSITIONS,
    TERMINAL_SHIPMENT_STATUSES,
    can_transition,
)

__all__ = [
    "Carrier",
    "CarrierService",
    "ShippingMethod",
    "ShippingZone",
    "ShippingRate",
    "Shipment",
    "ShipmentStatus",
    "VALID_SHIPMENT_TRANSITIONS",
    "TERMINAL_SHIPMENT_STATUSES",
    "can_transition",
]
