"""
Shipping Service

Quoting and fulfillment on top of a ShippingStore:
- Zone lookup and rate lists (cached)
- Quote generation: zone -> eligible rates -> priced, ordered quotes
- Shipment creation with method re-validation
- Status lifecycle with compare-and-swap writes

Usage:
    service = ShippingService(SQLAlchemyShippingStore(db), cache)
    quotes = await service.get_shipping_quotes(address, package)
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from shipping_engine.core.config import settings
from shipping_engine.core.exceptions import (
    CarrierServiceNotFoundError,
    InvalidTransitionError,
    RestrictionViolationError,
    ShipmentConflictError,
    ShipmentNotFoundError,
)
from shipping_engine.core.result_cache import ResultCache
from shipping_engine.core.utils import utcnow
from shipping_engine.models.carrier import ShippingMethod
from shipping_engine.models.shipment import (
    ShipmentStatus,
    VALID_SHIPMENT_TRANSITIONS,
    can_transition,
)
from shipping_engine.modules.shipping.pricing import price_rate, rate_accepts_package
from shipping_engine.modules.shipping.validator import RestrictionValidator, ValidationResult
from shipping_engine.modules.shipping.zones import resolve_zone
from shipping_engine.schemas.shipping import (
    CarrierServiceSchema,
    PackageInfo,
    ShipmentCreate,
    ShipmentResponse,
    ShippingAddress,
    ShippingQuote,
    ShippingRateSchema,
    ShippingZoneSchema,
    TrackingInfo,
)
from shipping_engine.services.shipping_store import ShippingStore

logger = logging.getLogger(__name__)

# Cache key prefixes
ZONES_PREFIX = "shipping_zones"
ZONE_RATES_PREFIX = "zone_rates"
APPLICABLE_ZONE_PREFIX = "applicable_zone"
QUOTES_PREFIX = "shipping_quotes"
SHIPMENT_PREFIX = "shipment"

SHIPMENT_WRITE_PREFIXES = [QUOTES_PREFIX, SHIPMENT_PREFIX]
CONFIG_WRITE_PREFIXES = [ZONES_PREFIX, ZONE_RATES_PREFIX, APPLICABLE_ZONE_PREFIX, QUOTES_PREFIX]


def render_tracking_url(template: Optional[str], tracking_number: str) -> Optional[str]:
    """Fill a carrier's {tracking_number} template."""
    if not template:
        return None
    return template.replace("{tracking_number}", tracking_number)


def quote_sort_key(quote: ShippingQuote):
    return (quote.cost, quote.estimated_days, quote.carrier_service_id, quote.rate_id)


class ShippingService:
    """
    Shipping quotes and shipment lifecycle.

    Args:
        store: Record store adapter
        cache: Result cache (a private in-process cache if omitted)
        validator: Method restriction validator
    """

    def __init__(
        self,
        store: ShippingStore,
        cache: Optional[ResultCache] = None,
        validator: Optional[RestrictionValidator] = None,
    ):
        self.store = store
        self.cache = cache if cache is not None else ResultCache(
            default_ttl_seconds=settings.SHIPPING_ZONES_CACHE_TTL_SECONDS,
            max_size=settings.SHIPPING_CACHE_MAX_SIZE,
        )
        self.validator = validator or RestrictionValidator()

    # ==================== Zones & Rates ====================

    async def get_shipping_zones(self) -> List[ShippingZoneSchema]:
        """Active zones in configured order."""
        cached = await self.cache.get(ZONES_PREFIX)
        if cached is not None:
            return [ShippingZoneSchema.model_validate(z) for z in cached]

        zones = await self.store.list_active_zones()
        await self.cache.set(
            ZONES_PREFIX,
            [z.model_dump(mode="json") for z in zones],
            ttl_seconds=settings.SHIPPING_ZONES_CACHE_TTL_SECONDS,
        )
        return zones

    async def get_zone_rates(self, zone_id: int) -> List[ShippingRateSchema]:
        """Active rates for a zone with their carrier services."""
        key = f"{ZONE_RATES_PREFIX}:{zone_id}"
        cached = await self.cache.get(key)
        if cached is not None:
            return [ShippingRateSchema.model_validate(r) for r in cached]

        rates = await self.store.list_active_rates_for_zone(zone_id)
        await self.cache.set(
            key,
            [r.model_dump(mode="json") for r in rates],
            ttl_seconds=settings.SHIPPING_RATES_CACHE_TTL_SECONDS,
        )
        return rates

    async def find_applicable_zone(self, address: ShippingAddress) -> Optional[ShippingZoneSchema]:
        key = ResultCache.make_key(APPLICABLE_ZONE_PREFIX, {
            "country_code": address.country_code,
            "region": address.region,
            "postal_code": address.postal_code,
        })
        cached = await self.cache.get(key)
        if cached is not None:
            return ShippingZoneSchema.model_validate(cached)

        zone = resolve_zone(await self.get_shipping_zones(), address)
        if zone is not None:
            await self.cache.set(
                key,
                zone.model_dump(mode="json"),
                ttl_seconds=settings.SHIPPING_ZONES_CACHE_TTL_SECONDS,
            )
        return zone

    # ==================== Quotes ====================

    async def get_shipping_quotes(
        self,
        address: ShippingAddress,
        package: PackageInfo,
    ) -> List[ShippingQuote]:
        """
        Priced shipping options for a destination and package.

        Returns an empty list when no zone covers the address. Quotes are
        ordered by cost, then estimated days, then carrier service id,
        then rate id.
        """
        key = ResultCache.make_key(QUOTES_PREFIX, {
            "address": address.model_dump(mode="json"),
            "package": package.model_dump(mode="json"),
        })
        cached = await self.cache.get(key)
        if cached is not None:
            return [ShippingQuote.model_validate(q) for q in cached]

        zone = await self.find_applicable_zone(address)
        if zone is None:
            logger.info(
                f"[SHIPPING] No zone for {address.country_code}/{address.region}/"
                f"{address.postal_code}, returning no quotes"
            )
            quotes: List[ShippingQuote] = []
        else:
            rates = await self.get_zone_rates(zone.id)
            quotes = self._build_quotes(zone, rates, address, package)

        await self.cache.set(
            key,
            [q.model_dump(mode="json") for q in quotes],
            ttl_seconds=settings.SHIPPING_QUOTES_CACHE_TTL_SECONDS,
        )
        return quotes

    def _build_quotes(
        self,
        zone: ShippingZoneSchema,
        rates: List[ShippingRateSchema],
        address: ShippingAddress,
        package: PackageInfo,
    ) -> List[ShippingQuote]:
        method_results: Dict[ShippingMethod, ValidationResult] = {}
        quotes = []

        for rate in rates:
            service = rate.carrier_service
            if service is None or not service.is_active:
                continue
            if not rate_accepts_package(rate, package):
                continue

            method = service.shipping_method
            if method not in method_results:
                method_results[method] = self.validator.validate(method, package, address)
            if not method_results[method].ok:
                continue

            quotes.append(ShippingQuote(
                carrier_service_id=service.id,
                carrier_name=service.carrier_name,
                service_name=service.name,
                cost=price_rate(rate, package),
                estimated_days=rate.estimated_days,
                shipping_method=method,
                zone_id=zone.id,
                rate_id=rate.id,
            ))

        quotes.sort(key=quote_sort_key)
        logger.info(f"[SHIPPING] Zone {zone.id}: {len(quotes)} quotes from {len(rates)} rates")
        return quotes

    # ==================== Shipments ====================

    async def _get_active_carrier_service(self, carrier_service_id: int) -> CarrierServiceSchema:
        service = await self.store.get_carrier_service(carrier_service_id)
        if service is None or not service.is_active:
            raise CarrierServiceNotFoundError(
                f"Carrier service {carrier_service_id} not found or inactive",
                carrier_service_id=carrier_service_id,
            )
        return service

    async def create_shipment(self, data: ShipmentCreate) -> ShipmentResponse:
        """
        Persist a PENDING shipment for an accepted quote.

        Raises:
            CarrierServiceNotFoundError: Service missing or inactive
            RestrictionViolationError: Method rules fail for this package/address
        """
        service = await self._get_active_carrier_service(data.carrier_service_id)

        result = self.validator.validate(service.shipping_method, data.package_info, data.shipping_address)
        if not result.ok:
            raise RestrictionViolationError(
                f"Shipping method {service.shipping_method.value} not available: "
                + "; ".join(result.reasons),
                reasons=result.reasons,
                shipping_method=service.shipping_method.value,
            )

        now = utcnow()
        estimated = data.estimated_delivery_date or now + timedelta(days=service.estimated_days)
        tracking_url = None
        if data.tracking_number:
            tracking_url = render_tracking_url(service.tracking_url_template, data.tracking_number)

        shipment = await self.store.create_shipment({
            "order_id": data.order_id,
            "carrier_service_id": service.id,
            "status": ShipmentStatus.PENDING,
            "shipping_address": data.shipping_address.model_dump(mode="json"),
            "package_info": data.package_info.model_dump(mode="json"),
            "shipping_cost": data.shipping_cost,
            "tracking_number": data.tracking_number,
            "tracking_url": tracking_url,
            "label_url": data.label_url,
            "estimated_delivery_date": estimated,
            "created_at": now,
            "updated_at": now,
        })

        await self.cache.invalidate(SHIPMENT_WRITE_PREFIXES)
        logger.info(
            f"[SHIPPING] Created shipment {shipment.id} for order {shipment.order_id} "
            f"via service {service.id} ({service.shipping_method.value})"
        )
        return shipment

    async def get_shipment(self, shipment_id: int) -> ShipmentResponse:
        key = f"{SHIPMENT_PREFIX}:{shipment_id}"
        cached = await self.cache.get(key)
        if cached is not None:
            return ShipmentResponse.model_validate(cached)

        shipment = await self.store.get_shipment(shipment_id)
        if shipment is None:
            raise ShipmentNotFoundError(f"Shipment {shipment_id} not found", shipment_id=shipment_id)

        await self.cache.set(
            key,
            shipment.model_dump(mode="json"),
            ttl_seconds=settings.SHIPMENT_CACHE_TTL_SECONDS,
        )
        return shipment

    async def _tracking_fields(self, shipment_id: int, tracking_info: TrackingInfo) -> Dict[str, Any]:
        fields = tracking_info.model_dump(exclude_none=True)

        if fields.get("tracking_number") and not fields.get("tracking_url"):
            shipment = await self.store.get_shipment(shipment_id)
            if shipment is not None:
                service = await self.store.get_carrier_service(shipment.carrier_service_id)
                if service is not None:
                    url = render_tracking_url(service.tracking_url_template, fields["tracking_number"])
                    if url:
                        fields["tracking_url"] = url
        return fields

    async def update_shipment_status(
        self,
        shipment_id: int,
        status: Union[ShipmentStatus, str],
        tracking_info: Optional[TrackingInfo] = None,
    ) -> ShipmentResponse:
        """
        Move a shipment to a new status.

        Raises:
            ShipmentNotFoundError: Unknown shipment
            InvalidTransitionError: Status not reachable from the current one
            ShipmentConflictError: Status changed concurrently since it was read
        """
        status = ShipmentStatus(status)

        current = await self.store.get_shipment_status(shipment_id)
        if current is None:
            raise ShipmentNotFoundError(f"Shipment {shipment_id} not found", shipment_id=shipment_id)
        current = ShipmentStatus(current)

        if not can_transition(current, status):
            allowed = [s.value for s in VALID_SHIPMENT_TRANSITIONS.get(current, [])]
            raise InvalidTransitionError(
                f"Cannot transition shipment {shipment_id} from {current.value} to {status.value}. "
                f"Valid transitions: {allowed}",
                current_status=current.value,
                requested_status=status.value,
            )

        now = utcnow()
        fields: Dict[str, Any] = {}
        if tracking_info is not None:
            fields.update(await self._tracking_fields(shipment_id, tracking_info))
        fields["status"] = status
        fields["updated_at"] = now
        if status == ShipmentStatus.DELIVERED:
            fields["actual_delivery_date"] = now

        updated = await self.store.update_shipment(shipment_id, fields, expected_status=current)
        if updated is None:
            found = await self.store.get_shipment_status(shipment_id)
            if found is None:
                raise ShipmentNotFoundError(f"Shipment {shipment_id} not found", shipment_id=shipment_id)
            found = ShipmentStatus(found)
            logger.warning(
                f"[SHIPPING] Conflict on shipment {shipment_id}: expected {current.value}, "
                f"found {found.value}, requested {status.value}"
            )
            raise ShipmentConflictError(
                f"Shipment {shipment_id} changed to {found.value} concurrently",
                current_status=found.value,
                requested_status=status.value,
            )

        await self.cache.invalidate(SHIPMENT_WRITE_PREFIXES)
        logger.info(f"[SHIPPING] Shipment {shipment_id}: {current.value} -> {status.value}")
        return updated
