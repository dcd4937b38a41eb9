"""
Shipping rate model

A priced offer tied to a zone and a carrier service, with optional
weight (kg) and order value eligibility bounds.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, Float, Boolean, DateTime, ForeignKey, Index
)
from sqlalchemy.orm import relationship

from shipping_engine.core.database import Base


class ShippingRate(Base):
    __tablename__ = "shipping_rates"
    __table_args__ = (
        Index("ix_shipping_rates_zone_active", "zone_id", "is_active"),
        Index("ix_shipping_rates_carrier_service_id", "carrier_service_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    zone_id = Column(Integer, ForeignKey("shipping_zones.id"), nullable=False)
    carrier_service_id = Column(Integer, ForeignKey("carrier_services.id"), nullable=False)

    # Eligibility bounds (inclusive, NULL = unbounded)
    min_weight = Column(Float, nullable=True)
    max_weight = Column(Float, nullable=True)
    min_order_amount = Column(Float, nullable=True)
    max_order_amount = Column(Float, nullable=True)

    # Pricing
    base_cost = Column(Float, nullable=False, default=0.0)
    per_kg_cost = Column(Float, nullable=True)
    free_shipping_threshold = Column(Float, nullable=True)

    estimated_days = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    zone = relationship("ShippingZone", back_populates="rates")
    carrier_service = relationship("CarrierService", back_populates="rates")

    def __repr__(self):
        return f"<ShippingRate(id={self.id}, zone={self.zone_id}, service={self.carrier_service_id}, base={self.base_cost})>"
