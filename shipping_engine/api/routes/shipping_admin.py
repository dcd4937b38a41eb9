"""
Shipping configuration admin routes

Zone, rate, carrier and carrier service management.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status

from shipping_engine.api.deps import get_shipping_config_service
from shipping_engine.core.error_handler import http_exception_for
from shipping_engine.core.exceptions import ShippingEngineError
from shipping_engine.services.shipping_config_service import ShippingConfigService
from shipping_engine.schemas.shipping import (
    CarrierCreate,
    CarrierResponse,
    CarrierServiceCreate,
    CarrierServiceSchema,
    RateCreate,
    RateUpdate,
    ShippingRateSchema,
    ShippingZoneSchema,
    ZoneCreate,
    ZoneUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shipping/admin", tags=["shipping-admin"])


@router.get("/zones", response_model=List[ShippingZoneSchema])
async def list_zones(
    include_inactive: bool = Query(False),
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    try:
        return await service.list_zones(include_inactive=include_inactive)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.get("/zones/{zone_id}", response_model=ShippingZoneSchema)
async def get_zone(
    zone_id: int,
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    try:
        return await service.get_zone(zone_id)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.post("/zones", response_model=ShippingZoneSchema, status_code=status.HTTP_201_CREATED)
async def create_zone(
    zone_data: ZoneCreate,
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    """Create a zone, optionally with initial rates."""
    try:
        return await service.create_zone(zone_data)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.patch("/zones/{zone_id}", response_model=ShippingZoneSchema)
async def update_zone(
    zone_id: int,
    zone_data: ZoneUpdate,
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    try:
        return await service.update_zone(zone_id, zone_data)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.delete("/zones/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_zone(
    zone_id: int,
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    """Delete a zone together with its rates."""
    try:
        await service.delete_zone(zone_id)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.post("/zones/{zone_id}/rates", response_model=ShippingRateSchema, status_code=status.HTTP_201_CREATED)
async def add_rate(
    zone_id: int,
    rate_data: RateCreate,
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    try:
        return await service.add_rate(zone_id, rate_data)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.patch("/rates/{rate_id}", response_model=ShippingRateSchema)
async def update_rate(
    rate_id: int,
    rate_data: RateUpdate,
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    try:
        return await service.update_rate(rate_id, rate_data)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.delete("/rates/{rate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rate(
    rate_id: int,
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    try:
        await service.delete_rate(rate_id)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.post("/carriers", response_model=CarrierResponse, status_code=status.HTTP_201_CREATED)
async def create_carrier(
    carrier_data: CarrierCreate,
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    try:
        return await service.create_carrier(carrier_data)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.post("/carrier-services", response_model=CarrierServiceSchema, status_code=status.HTTP_201_CREATED)
async def create_carrier_service(
    service_data: CarrierServiceCreate,
    service: ShippingConfigService = Depends(get_shipping_config_service),
):
    try:
        return await service.create_carrier_service(service_data)
    except ShippingEngineError as e:
        raise http_exception_for(e)
