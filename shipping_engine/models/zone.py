"""
Shipping zone model

A zone is a geographic eligibility region. Zones are evaluated in
(sort_order, id) order and the first match wins.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Index
from sqlalchemy.orm import relationship

from shipping_engine.core.database import Base


class ShippingZone(Base):
    __tablename__ = "shipping_zones"
    __table_args__ = (
        Index("ix_shipping_zones_active_order", "is_active", "sort_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)

    # Eligibility
    country_codes = Column(JSON, nullable=False, default=list)  # ["AR", "UY"]
    regions = Column(JSON, nullable=True)  # ["BA", "CABA"]
    postal_codes = Column(JSON, nullable=True)  # ["1425", "14*"]

    is_active = Column(Boolean, default=True, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    rates = relationship("ShippingRate", back_populates="zone")

    def __repr__(self):
        return f"<ShippingZone(id={self.id}, name={self.name}, countries={self.country_codes})>"
