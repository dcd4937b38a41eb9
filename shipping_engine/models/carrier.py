"""
Carrier and CarrierService models

A carrier (e.g. Andreani, Correo Argentino) offers carrier services, each a
named shipping product bound to one coarse shipping method.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime,
    ForeignKey, Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
import enum

from shipping_engine.core.database import Base


class ShippingMethod(str, enum.Enum):
    """Coarse shipping categories carrying method-wide restrictions."""
    STANDARD = "standard"
    EXPRESS = "express"
    SAME_DAY = "same_day"
    PICKUP = "pickup"


class Carrier(Base):
    """Carrier offering one or more services."""
    __tablename__ = "carriers"
    __table_args__ = (
        Index("ix_carriers_active", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    display_name = Column(String(100), nullable=False)  # User-facing name
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    services = relationship("CarrierService", back_populates="carrier")

    def __repr__(self):
        return f"<Carrier(id={self.id}, code={self.code})>"


class CarrierService(Base):
    """
    A named shipping product (e.g. "Express 2-day").

    tracking_url_template holds a {tracking_number} placeholder.
    """
    __tablename__ = "carrier_services"
    __table_args__ = (
        Index("ix_carrier_services_carrier_id", "carrier_id"),
        Index("ix_carrier_services_active", "is_active"),
    )

    id = Column(Integer, primary_key=True, index=True)
    carrier_id = Column(Integer, ForeignKey("carriers.id"), nullable=False)
    name = Column(String(100), nullable=False)
    code = Column(String(50), nullable=False)
    shipping_method = Column(
        SQLEnum(
            ShippingMethod,
            values_callable=lambda e: [m.value for m in e],
            native_enum=False,
            length=20,
        ),
        nullable=False,
        default=ShippingMethod.STANDARD,
    )
    estimated_days = Column(Integer, nullable=False, default=0)
    tracking_url_template = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    carrier = relationship("Carrier", back_populates="services")
    rates = relationship("ShippingRate", back_populates="carrier_service")

    @property
    def carrier_name(self) -> str:
        """Display name of the owning carrier."""
        if self.carrier is None:
            return ""
        return self.carrier.display_name

    def __repr__(self):
        return f"<CarrierService(id={self.id}, code={self.code}, method={self.shipping_method})>"
