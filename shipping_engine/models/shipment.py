"""
Shipment model and fulfillment lifecycle

Tracks a shipment from creation (PENDING) through delivery or failure.
Shipments are never deleted; terminal records are kept for history.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Float, DateTime,
    JSON, ForeignKey, Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
import enum

from shipping_engine.core.database import Base


class ShipmentStatus(str, enum.Enum):
    """Shipment lifecycle status"""
    PENDING = "PENDING"  # Created from an accepted quote
    PROCESSING = "PROCESSING"  # Being prepared for the carrier
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"  # Terminal
    FAILED = "FAILED"  # Terminal


VALID_SHIPMENT_TRANSITIONS = {
    ShipmentStatus.PENDING: [
        ShipmentStatus.PROCESSING,
        ShipmentStatus.FAILED,
    ],
    ShipmentStatus.PROCESSING: [
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.FAILED,
    ],
    ShipmentStatus.IN_TRANSIT: [
        ShipmentStatus.DELIVERED,
        ShipmentStatus.FAILED,
    ],
    ShipmentStatus.DELIVERED: [],
    ShipmentStatus.FAILED: [],
}

TERMINAL_SHIPMENT_STATUSES = frozenset(
    status for status, targets in VALID_SHIPMENT_TRANSITIONS.items() if not targets
)


def can_transition(current: ShipmentStatus, requested: ShipmentStatus) -> bool:
    """Check a requested status change against the lifecycle table."""
    return requested in VALID_SHIPMENT_TRANSITIONS.get(current, [])


class Shipment(Base):
    """
    A created delivery for an order.

    Address and package are JSON snapshots taken at creation time.
    """
    __tablename__ = "shipments"
    __table_args__ = (
        Index("ix_shipments_order_id", "order_id"),
        Index("ix_shipments_tracking_number", "tracking_number"),
        Index("ix_shipments_status", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Order reference (the order record lives outside the engine)
    order_id = Column(String(64), nullable=False)
    carrier_service_id = Column(Integer, ForeignKey("carrier_services.id"), nullable=False)

    # Tracking
    tracking_number = Column(String(100), nullable=True)
    tracking_url = Column(String(500), nullable=True)
    label_url = Column(String(500), nullable=True)

    status = Column(
        SQLEnum(ShipmentStatus, native_enum=False, length=20),
        default=ShipmentStatus.PENDING,
        nullable=False
    )

    # Snapshots
    shipping_address = Column(JSON, nullable=False)
    package_info = Column(JSON, nullable=False)

    shipping_cost = Column(Float, nullable=False)

    # Delivery estimates
    estimated_delivery_date = Column(DateTime(timezone=True), nullable=True)
    actual_delivery_date = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    carrier_service = relationship("CarrierService")

    @property
    def is_terminal(self) -> bool:
        """Check if shipment reached DELIVERED or FAILED."""
        return self.status in TERMINAL_SHIPMENT_STATUSES

    def __repr__(self):
        return f"<Shipment(id={self.id}, order={self.order_id}, status={self.status})>"
