"""
Shipping Schemas

Pydantic models for quoting, fulfillment and configuration. The engine
computes on these; ORM rows are converted at the store boundary.
"""
from datetime import datetime
from typing import Optional, List, Tuple
from pydantic import BaseModel, Field, field_validator, model_validator

from shipping_engine.models.carrier import ShippingMethod
from shipping_engine.models.shipment import ShipmentStatus


# NOT NULL columns: partial updates may omit these but never null them
ZONE_REQUIRED_FIELDS = ("name", "country_codes", "is_active", "sort_order")
RATE_REQUIRED_FIELDS = ("carrier_service_id", "base_cost", "estimated_days", "is_active")


def _check_bounds(low: Optional[float], high: Optional[float], label: str):
    if low is not None and high is not None and low > high:
        raise ValueError(f"min_{label} ({low}) must not exceed max_{label} ({high})")


def _reject_nulls(model: BaseModel, fields: Tuple[str, ...]):
    nulled = [f for f in fields if f in model.model_fields_set and getattr(model, f) is None]
    if nulled:
        raise ValueError(f"{', '.join(nulled)} cannot be null")


def _normalize_codes(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    return [v.strip().upper() for v in values if v and v.strip()]


def _validate_postal_patterns(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    cleaned = [v.strip() for v in values if v and v.strip()]
    for pattern in cleaned:
        if pattern.count("*") > 1:
            raise ValueError(f"Postal code pattern {pattern!r} may contain at most one '*'")
    return cleaned


# ==================== Value Schemas ====================


class ShippingAddress(BaseModel):
    """Destination address. Immutable once built."""
    street: str = Field(..., min_length=1, max_length=200)
    number: str = Field(..., min_length=1, max_length=20)
    unit: Optional[str] = Field(None, max_length=20)
    city: str = Field(..., min_length=1, max_length=100)
    region: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., min_length=1, max_length=20)
    country_code: str = Field(..., min_length=2, max_length=2)
    delivery_note: Optional[str] = Field(None, max_length=500)

    class Config:
        frozen = True

    @field_validator("country_code")
    @classmethod
    def validate_country_code(cls, v):
        return v.upper()

    @field_validator("postal_code", "region", "city")
    @classmethod
    def strip_whitespace(cls, v):
        return v.strip()


class PackageItem(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)
    weight: float = Field(0.0, ge=0, description="Unit weight in kg")

    class Config:
        frozen = True

    @field_validator("product_id", mode="before")
    @classmethod
    def coerce_product_id(cls, v):
        return str(v) if v is not None else v


class PackageInfo(BaseModel):
    """Package details for rate quoting and shipping."""
    weight: float = Field(..., ge=0, description="Total weight in kg")
    length: float = Field(0.0, ge=0, description="Length in cm")
    width: float = Field(0.0, ge=0, description="Width in cm")
    height: float = Field(0.0, ge=0, description="Height in cm")
    declared_value: float = Field(0.0, ge=0, description="Order value used for rate bounds and free shipping")
    items: List[PackageItem] = []

    class Config:
        frozen = True


# ==================== Configuration Schemas ====================


class ShippingZoneSchema(BaseModel):
    id: int
    name: str
    country_codes: List[str]
    regions: Optional[List[str]] = None
    postal_codes: Optional[List[str]] = None
    is_active: bool = True
    sort_order: int = 0

    class Config:
        from_attributes = True


class CarrierServiceSchema(BaseModel):
    id: int
    carrier_id: int
    carrier_name: str = ""
    name: str
    code: str
    shipping_method: ShippingMethod
    estimated_days: int = 0
    tracking_url_template: Optional[str] = None
    is_active: bool = True

    class Config:
        from_attributes = True


class ShippingRateSchema(BaseModel):
    """A rate row, joined with its carrier service when loaded for quoting."""
    id: int
    zone_id: int
    carrier_service_id: int
    min_weight: Optional[float] = Field(None, ge=0)
    max_weight: Optional[float] = Field(None, ge=0)
    min_order_amount: Optional[float] = Field(None, ge=0)
    max_order_amount: Optional[float] = Field(None, ge=0)
    base_cost: float = Field(0.0, ge=0)
    per_kg_cost: Optional[float] = Field(None, ge=0)
    free_shipping_threshold: Optional[float] = Field(None, ge=0)
    estimated_days: int = 0
    is_active: bool = True
    carrier_service: Optional[CarrierServiceSchema] = None

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def validate_bounds(self):
        _check_bounds(self.min_weight, self.max_weight, "weight")
        _check_bounds(self.min_order_amount, self.max_order_amount, "order_amount")
        return self


class CarrierResponse(BaseModel):
    id: int
    code: str
    name: str
    display_name: str
    is_active: bool = True

    class Config:
        from_attributes = True


# ==================== Quote Schemas ====================


class ShippingQuote(BaseModel):
    """A single priced shipping option. Never persisted."""
    carrier_service_id: int
    carrier_name: str
    service_name: str
    cost: float
    estimated_days: int
    shipping_method: ShippingMethod
    zone_id: int
    rate_id: int


class QuoteRequest(BaseModel):
    address: ShippingAddress
    package: PackageInfo


class QuoteListResponse(BaseModel):
    quotes: List[ShippingQuote]
    destination_postal_code: str
    destination_country: str


# ==================== Shipment Schemas ====================


class ShipmentCreate(BaseModel):
    """Create a shipment from an accepted quote."""
    order_id: str = Field(..., min_length=1, max_length=64)
    carrier_service_id: int
    shipping_address: ShippingAddress
    package_info: PackageInfo
    shipping_cost: float = Field(..., ge=0)
    tracking_number: Optional[str] = Field(None, max_length=100)
    label_url: Optional[str] = Field(None, max_length=500)
    estimated_delivery_date: Optional[datetime] = None

    @field_validator("order_id", mode="before")
    @classmethod
    def coerce_order_id(cls, v):
        return str(v) if isinstance(v, int) else v


class TrackingInfo(BaseModel):
    """Tracking fields merged into a shipment on a status change."""
    tracking_number: Optional[str] = Field(None, max_length=100)
    tracking_url: Optional[str] = Field(None, max_length=500)
    label_url: Optional[str] = Field(None, max_length=500)
    estimated_delivery_date: Optional[datetime] = None


class ShipmentStatusUpdate(BaseModel):
    status: ShipmentStatus
    tracking_info: Optional[TrackingInfo] = None


class ShipmentResponse(BaseModel):
    """Shipment details."""
    id: int
    order_id: str
    carrier_service_id: int
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    label_url: Optional[str] = None
    status: ShipmentStatus
    shipping_address: ShippingAddress
    package_info: PackageInfo
    shipping_cost: float
    estimated_delivery_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==================== Admin Schemas ====================


class RateCreate(BaseModel):
    carrier_service_id: int
    min_weight: Optional[float] = Field(None, ge=0)
    max_weight: Optional[float] = Field(None, ge=0)
    min_order_amount: Optional[float] = Field(None, ge=0)
    max_order_amount: Optional[float] = Field(None, ge=0)
    base_cost: float = Field(0.0, ge=0)
    per_kg_cost: Optional[float] = Field(None, ge=0)
    free_shipping_threshold: Optional[float] = Field(None, ge=0)
    estimated_days: int = Field(0, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def validate_bounds(self):
        _check_bounds(self.min_weight, self.max_weight, "weight")
        _check_bounds(self.min_order_amount, self.max_order_amount, "order_amount")
        return self


class RateUpdate(BaseModel):
    """Partial rate update. Bounds are re-checked against the stored row."""
    carrier_service_id: Optional[int] = None
    min_weight: Optional[float] = Field(None, ge=0)
    max_weight: Optional[float] = Field(None, ge=0)
    min_order_amount: Optional[float] = Field(None, ge=0)
    max_order_amount: Optional[float] = Field(None, ge=0)
    base_cost: Optional[float] = Field(None, ge=0)
    per_kg_cost: Optional[float] = Field(None, ge=0)
    free_shipping_threshold: Optional[float] = Field(None, ge=0)
    estimated_days: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def validate_required_columns(self):
        _reject_nulls(self, RATE_REQUIRED_FIELDS)
        return self


class ZoneCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    country_codes: List[str] = Field(..., min_length=1)
    regions: Optional[List[str]] = None
    postal_codes: Optional[List[str]] = None
    is_active: bool = True
    sort_order: int = 0
    rates: List[RateCreate] = []

    @field_validator("country_codes")
    @classmethod
    def validate_country_codes(cls, v):
        codes = _normalize_codes(v)
        if not codes:
            raise ValueError("At least one country code is required")
        return codes

    @field_validator("postal_codes")
    @classmethod
    def validate_postal_codes(cls, v):
        return _validate_postal_patterns(v)


class ZoneUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    country_codes: Optional[List[str]] = None
    regions: Optional[List[str]] = None
    postal_codes: Optional[List[str]] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None

    @model_validator(mode="after")
    def validate_required_columns(self):
        _reject_nulls(self, ZONE_REQUIRED_FIELDS)
        return self

    @field_validator("country_codes")
    @classmethod
    def validate_country_codes(cls, v):
        if v is None:
            return v
        codes = _normalize_codes(v)
        if not codes:
            raise ValueError("At least one country code is required")
        return codes

    @field_validator("postal_codes")
    @classmethod
    def validate_postal_codes(cls, v):
        return _validate_postal_patterns(v)


class CarrierCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=100)
    is_active: bool = True


class CarrierServiceCreate(BaseModel):
    carrier_id: int
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=50)
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    estimated_days: int = Field(0, ge=0)
    tracking_url_template: Optional[str] = Field(None, max_length=500)
    is_active: bool = True

    @field_validator("tracking_url_template")
    @classmethod
    def validate_template(cls, v):
        if v and "{tracking_number}" not in v:
            raise ValueError("tracking_url_template must contain {tracking_number}")
        return v
