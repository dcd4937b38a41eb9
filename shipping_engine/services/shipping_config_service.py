"""
Shipping configuration administration

CRUD for zones, rates, carriers and carrier services. Every mutation
invalidates cached zones, rate lists, zone lookups and quotes so the
next quote sees the new configuration.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shipping_engine.core.exceptions import (
    ConfigurationError,
    RateNotFoundError,
    ZoneNotFoundError,
)
from shipping_engine.core.result_cache import ResultCache
from shipping_engine.models.carrier import Carrier, CarrierService
from shipping_engine.models.rate import ShippingRate
from shipping_engine.models.zone import ShippingZone
from shipping_engine.schemas.shipping import (
    CarrierCreate,
    CarrierResponse,
    CarrierServiceCreate,
    CarrierServiceSchema,
    RateCreate,
    RATE_REQUIRED_FIELDS,
    RateUpdate,
    ShippingRateSchema,
    ShippingZoneSchema,
    ZoneCreate,
    ZoneUpdate,
    ZONE_REQUIRED_FIELDS,
)
from shipping_engine.services.shipping_service import CONFIG_WRITE_PREFIXES
from shipping_engine.services.shipping_store import run_with_retry

logger = logging.getLogger(__name__)


def _require_values(changes: dict, fields, label: str) -> None:
    nulled = [f for f in fields if f in changes and changes[f] is None]
    if nulled:
        raise ConfigurationError(
            f"{label}: {', '.join(nulled)} cannot be null",
            details={"fields": nulled},
        )


class ShippingConfigService:
    """Administration of the shipping configuration tables."""

    def __init__(self, db: AsyncSession, cache: ResultCache):
        self.db = db
        self.cache = cache

    async def _invalidate(self):
        await self.cache.invalidate(CONFIG_WRITE_PREFIXES)

    async def _get_zone_row(self, zone_id: int) -> ShippingZone:
        zone = await self.db.get(ShippingZone, zone_id)
        if zone is None:
            raise ZoneNotFoundError(f"Zone {zone_id} not found", zone_id=zone_id)
        return zone

    async def _get_rate_row(self, rate_id: int) -> ShippingRate:
        rate = await self.db.get(ShippingRate, rate_id)
        if rate is None:
            raise RateNotFoundError(f"Rate {rate_id} not found", rate_id=rate_id)
        return rate

    async def _require_carrier_service(self, carrier_service_id: int):
        if await self.db.get(CarrierService, carrier_service_id) is None:
            raise ConfigurationError(
                f"Carrier service {carrier_service_id} does not exist",
                details={"carrier_service_id": carrier_service_id},
            )

    async def _load_rate(self, rate_id: int) -> ShippingRateSchema:
        result = await self.db.execute(
            select(ShippingRate)
            .options(selectinload(ShippingRate.carrier_service).selectinload(CarrierService.carrier))
            .where(ShippingRate.id == rate_id)
            .execution_options(populate_existing=True)
        )
        return ShippingRateSchema.model_validate(result.scalar_one())

    # ==================== Zones ====================

    async def list_zones(self, include_inactive: bool = False) -> List[ShippingZoneSchema]:
        async def _query():
            query = select(ShippingZone).order_by(ShippingZone.sort_order, ShippingZone.id)
            if not include_inactive:
                query = query.where(ShippingZone.is_active == True)
            result = await self.db.execute(query)
            return [ShippingZoneSchema.model_validate(z) for z in result.scalars().all()]

        return await run_with_retry(self.db, _query, "list_zones")

    async def get_zone(self, zone_id: int) -> ShippingZoneSchema:
        async def _query():
            return ShippingZoneSchema.model_validate(await self._get_zone_row(zone_id))

        return await run_with_retry(self.db, _query, "get_zone")

    async def create_zone(self, data: ZoneCreate) -> ShippingZoneSchema:
        """Create a zone, optionally with its initial rates."""
        async def _create():
            for rate_data in data.rates:
                await self._require_carrier_service(rate_data.carrier_service_id)

            zone = ShippingZone(**data.model_dump(exclude={"rates"}))
            self.db.add(zone)
            await self.db.flush()

            for rate_data in data.rates:
                self.db.add(ShippingRate(zone_id=zone.id, **rate_data.model_dump()))

            await self.db.commit()
            await self.db.refresh(zone)
            return ShippingZoneSchema.model_validate(zone)

        zone = await run_with_retry(self.db, _create, "create_zone")
        await self._invalidate()
        logger.info(f"[SHIPPING] Created zone {zone.id} ({zone.name}) with {len(data.rates)} rates")
        return zone

    async def update_zone(self, zone_id: int, data: ZoneUpdate) -> ShippingZoneSchema:
        async def _update():
            zone = await self._get_zone_row(zone_id)
            changes = data.model_dump(exclude_unset=True)
            _require_values(changes, ZONE_REQUIRED_FIELDS, f"Zone {zone_id}")
            for field, value in changes.items():
                setattr(zone, field, value)
            await self.db.commit()
            await self.db.refresh(zone)
            return ShippingZoneSchema.model_validate(zone)

        zone = await run_with_retry(self.db, _update, "update_zone")
        await self._invalidate()
        logger.info(f"[SHIPPING] Updated zone {zone_id}")
        return zone

    async def delete_zone(self, zone_id: int) -> None:
        """Delete a zone and its rates."""
        async def _delete():
            zone = await self._get_zone_row(zone_id)
            await self.db.execute(delete(ShippingRate).where(ShippingRate.zone_id == zone_id))
            await self.db.delete(zone)
            await self.db.commit()

        await run_with_retry(self.db, _delete, "delete_zone")
        await self._invalidate()
        logger.info(f"[SHIPPING] Deleted zone {zone_id}")

    # ==================== Rates ====================

    async def add_rate(self, zone_id: int, data: RateCreate) -> ShippingRateSchema:
        async def _create():
            await self._get_zone_row(zone_id)
            await self._require_carrier_service(data.carrier_service_id)
            rate = ShippingRate(zone_id=zone_id, **data.model_dump())
            self.db.add(rate)
            await self.db.commit()
            return await self._load_rate(rate.id)

        rate = await run_with_retry(self.db, _create, "add_rate")
        await self._invalidate()
        logger.info(f"[SHIPPING] Added rate {rate.id} to zone {zone_id}")
        return rate

    async def update_rate(self, rate_id: int, data: RateUpdate) -> ShippingRateSchema:
        """
        Apply a partial rate update.

        Raises:
            RateNotFoundError: Unknown rate
            ConfigurationError: Merged bounds are inverted or the carrier service is unknown
        """
        async def _update():
            rate = await self._get_rate_row(rate_id)
            changes = data.model_dump(exclude_unset=True)
            _require_values(changes, RATE_REQUIRED_FIELDS, f"Rate {rate_id}")

            if changes.get("carrier_service_id") is not None:
                await self._require_carrier_service(changes["carrier_service_id"])

            for low_field, high_field in (
                ("min_weight", "max_weight"),
                ("min_order_amount", "max_order_amount"),
            ):
                low = changes.get(low_field, getattr(rate, low_field))
                high = changes.get(high_field, getattr(rate, high_field))
                if low is not None and high is not None and low > high:
                    raise ConfigurationError(
                        f"{low_field} ({low}) must not exceed {high_field} ({high})",
                        details={"rate_id": rate_id, low_field: low, high_field: high},
                    )

            for field, value in changes.items():
                setattr(rate, field, value)
            await self.db.commit()
            return await self._load_rate(rate_id)

        rate = await run_with_retry(self.db, _update, "update_rate")
        await self._invalidate()
        logger.info(f"[SHIPPING] Updated rate {rate_id}")
        return rate

    async def delete_rate(self, rate_id: int) -> None:
        async def _delete():
            rate = await self._get_rate_row(rate_id)
            await self.db.delete(rate)
            await self.db.commit()

        await run_with_retry(self.db, _delete, "delete_rate")
        await self._invalidate()
        logger.info(f"[SHIPPING] Deleted rate {rate_id}")

    # ==================== Carriers ====================

    async def create_carrier(self, data: CarrierCreate) -> CarrierResponse:
        async def _create():
            result = await self.db.execute(select(Carrier.id).where(Carrier.code == data.code))
            if result.scalar_one_or_none() is not None:
                raise ConfigurationError(
                    f"Carrier code {data.code!r} already exists",
                    details={"code": data.code},
                )
            carrier = Carrier(**data.model_dump())
            self.db.add(carrier)
            await self.db.commit()
            await self.db.refresh(carrier)
            return CarrierResponse.model_validate(carrier)

        carrier = await run_with_retry(self.db, _create, "create_carrier")
        logger.info(f"[SHIPPING] Created carrier {carrier.id} ({carrier.code})")
        return carrier

    async def create_carrier_service(self, data: CarrierServiceCreate) -> CarrierServiceSchema:
        async def _create():
            if await self.db.get(Carrier, data.carrier_id) is None:
                raise ConfigurationError(
                    f"Carrier {data.carrier_id} does not exist",
                    details={"carrier_id": data.carrier_id},
                )
            service = CarrierService(**data.model_dump())
            self.db.add(service)
            await self.db.commit()

            result = await self.db.execute(
                select(CarrierService)
                .options(selectinload(CarrierService.carrier))
                .where(CarrierService.id == service.id)
            )
            return CarrierServiceSchema.model_validate(result.scalar_one())

        service = await run_with_retry(self.db, _create, "create_carrier_service")
        await self._invalidate()
        logger.info(f"[SHIPPING] Created carrier service {service.id} ({service.code})")
        return service
