"""
Shipping API Routes

Provides endpoints for:
- Rate quoting (priced options for an address and package)
- Zone and rate reads
- Shipment creation and status lifecycle
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from shipping_engine.api.deps import get_shipping_service
from shipping_engine.core.error_handler import http_exception_for
from shipping_engine.core.exceptions import ShippingEngineError
from shipping_engine.services.shipping_service import ShippingService
from shipping_engine.schemas.shipping import (
    QuoteRequest,
    QuoteListResponse,
    ShipmentCreate,
    ShipmentResponse,
    ShipmentStatusUpdate,
    ShippingRateSchema,
    ShippingZoneSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shipping", tags=["shipping"])


# ==================== Quote Endpoints ====================


@router.post("/quotes", response_model=QuoteListResponse)
async def get_quotes(
    request: QuoteRequest,
    service: ShippingService = Depends(get_shipping_service),
):
    """
    Get shipping options for a destination and package.

    An address outside every zone yields an empty list.
    """
    try:
        quotes = await service.get_shipping_quotes(request.address, request.package)
        return QuoteListResponse(
            quotes=quotes,
            destination_postal_code=request.address.postal_code,
            destination_country=request.address.country_code,
        )
    except ShippingEngineError as e:
        raise http_exception_for(e)
    except Exception as e:
        logger.error(f"Failed to get shipping quotes: {e}")
        raise HTTPException(status_code=500, detail="Failed to get shipping quotes")


# ==================== Zone Endpoints ====================


@router.get("/zones", response_model=List[ShippingZoneSchema])
async def list_zones(service: ShippingService = Depends(get_shipping_service)):
    try:
        return await service.get_shipping_zones()
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.get("/zones/{zone_id}/rates", response_model=List[ShippingRateSchema])
async def list_zone_rates(
    zone_id: int,
    service: ShippingService = Depends(get_shipping_service),
):
    try:
        return await service.get_zone_rates(zone_id)
    except ShippingEngineError as e:
        raise http_exception_for(e)


# ==================== Shipment Endpoints ====================


@router.post("/shipments", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_shipment(
    shipment_data: ShipmentCreate,
    service: ShippingService = Depends(get_shipping_service),
):
    """
    Create a PENDING shipment from an accepted quote.

    Returns 422 with every violated rule when the method is not available.
    """
    try:
        return await service.create_shipment(shipment_data)
    except ShippingEngineError as e:
        raise http_exception_for(e)
    except Exception as e:
        logger.error(f"Failed to create shipment for order {shipment_data.order_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create shipment")


@router.get("/shipments/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: int,
    service: ShippingService = Depends(get_shipping_service),
):
    try:
        return await service.get_shipment(shipment_id)
    except ShippingEngineError as e:
        raise http_exception_for(e)


@router.patch("/shipments/{shipment_id}/status", response_model=ShipmentResponse)
async def update_shipment_status(
    shipment_id: int,
    update: ShipmentStatusUpdate,
    service: ShippingService = Depends(get_shipping_service),
):
    """
    Move a shipment through its lifecycle.

    Returns 409 for a transition the lifecycle does not allow, or when
    another update changed the status first.
    """
    try:
        return await service.update_shipment_status(
            shipment_id,
            update.status,
            tracking_info=update.tracking_info,
        )
    except ShippingEngineError as e:
        raise http_exception_for(e)
    except Exception as e:
        logger.error(f"Failed to update shipment {shipment_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update shipment status")
