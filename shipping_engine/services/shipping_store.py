"""
Record store adapter

ShippingStore is the boundary between the engine and persistence. The
SQLAlchemy implementation converts ORM rows into schemas and wraps every
round-trip in bounded retry on transport errors.

Status writes are compare-and-swap:
    UPDATE shipments SET ... WHERE id = :id AND status = :expected
Zero affected rows means another writer got there first (or the row is
gone); the caller decides which by re-reading.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shipping_engine.core.retry import RetryConfig, retry_async
from shipping_engine.models.carrier import CarrierService
from shipping_engine.models.rate import ShippingRate
from shipping_engine.models.shipment import Shipment, ShipmentStatus
from shipping_engine.models.zone import ShippingZone
from shipping_engine.schemas.shipping import (
    CarrierServiceSchema,
    ShipmentResponse,
    ShippingRateSchema,
    ShippingZoneSchema,
)

logger = logging.getLogger(__name__)


class ShippingStore(ABC):
    """Persistence operations the shipping engine depends on."""

    @abstractmethod
    async def list_active_zones(self) -> List[ShippingZoneSchema]:
        pass

    @abstractmethod
    async def list_active_rates_for_zone(self, zone_id: int) -> List[ShippingRateSchema]:
        """Active rates for a zone, each joined with its carrier service."""
        pass

    @abstractmethod
    async def get_carrier_service(self, carrier_service_id: int) -> Optional[CarrierServiceSchema]:
        pass

    @abstractmethod
    async def create_shipment(self, fields: Dict[str, Any]) -> ShipmentResponse:
        pass

    @abstractmethod
    async def get_shipment(self, shipment_id: int) -> Optional[ShipmentResponse]:
        pass

    @abstractmethod
    async def get_shipment_status(self, shipment_id: int) -> Optional[ShipmentStatus]:
        pass

    @abstractmethod
    async def update_shipment(
        self,
        shipment_id: int,
        fields: Dict[str, Any],
        expected_status: Optional[ShipmentStatus] = None,
    ) -> Optional[ShipmentResponse]:
        """
        Apply fields to a shipment.

        When expected_status is given the write only happens if the stored
        status still equals it.

        Returns:
            Updated shipment, or None if nothing was written
        """
        pass


async def run_with_retry(
    db: AsyncSession,
    operation: Callable[[], Awaitable[Any]],
    operation_name: str,
    config: Optional[RetryConfig] = None,
) -> Any:
    """Run a session operation with retry, rolling back between attempts."""

    async def _rollback(attempt: int, error: BaseException) -> None:
        try:
            await db.rollback()
        except Exception as e:
            logger.warning(f"[STORE_RETRY] Rollback before retry {attempt} of {operation_name} failed: {e}")

    return await retry_async(
        operation,
        operation_name=operation_name,
        config=config,
        on_retry=_rollback,
    )


class SQLAlchemyShippingStore(ShippingStore):
    """ShippingStore backed by an AsyncSession."""

    def __init__(self, db: AsyncSession, retry_config: Optional[RetryConfig] = None):
        self.db = db
        self.retry_config = retry_config

    async def _run(self, operation_name: str, operation: Callable[[], Awaitable[Any]]) -> Any:
        return await run_with_retry(self.db, operation, operation_name, self.retry_config)

    async def list_active_zones(self) -> List[ShippingZoneSchema]:
        async def _query():
            result = await self.db.execute(
                select(ShippingZone)
                .where(ShippingZone.is_active == True)
                .order_by(ShippingZone.sort_order, ShippingZone.id)
            )
            return [ShippingZoneSchema.model_validate(z) for z in result.scalars().all()]

        return await self._run("list_active_zones", _query)

    async def list_active_rates_for_zone(self, zone_id: int) -> List[ShippingRateSchema]:
        async def _query():
            result = await self.db.execute(
                select(ShippingRate)
                .options(
                    selectinload(ShippingRate.carrier_service).selectinload(CarrierService.carrier)
                )
                .where(
                    ShippingRate.zone_id == zone_id,
                    ShippingRate.is_active == True,
                )
                .order_by(ShippingRate.id)
            )
            return [ShippingRateSchema.model_validate(r) for r in result.scalars().all()]

        return await self._run("list_active_rates_for_zone", _query)

    async def get_carrier_service(self, carrier_service_id: int) -> Optional[CarrierServiceSchema]:
        async def _query():
            result = await self.db.execute(
                select(CarrierService)
                .options(selectinload(CarrierService.carrier))
                .where(CarrierService.id == carrier_service_id)
            )
            service = result.scalar_one_or_none()
            return CarrierServiceSchema.model_validate(service) if service else None

        return await self._run("get_carrier_service", _query)

    async def _load_shipment(self, shipment_id: int) -> Optional[ShipmentResponse]:
        result = await self.db.execute(
            select(Shipment)
            .where(Shipment.id == shipment_id)
            .execution_options(populate_existing=True)
        )
        shipment = result.scalar_one_or_none()
        return ShipmentResponse.model_validate(shipment) if shipment else None

    async def create_shipment(self, fields: Dict[str, Any]) -> ShipmentResponse:
        async def _insert():
            shipment = Shipment(**fields)
            self.db.add(shipment)
            await self.db.commit()
            await self.db.refresh(shipment)
            return ShipmentResponse.model_validate(shipment)

        return await self._run("create_shipment", _insert)

    async def get_shipment(self, shipment_id: int) -> Optional[ShipmentResponse]:
        return await self._run("get_shipment", lambda: self._load_shipment(shipment_id))

    async def get_shipment_status(self, shipment_id: int) -> Optional[ShipmentStatus]:
        async def _query():
            result = await self.db.execute(
                select(Shipment.status).where(Shipment.id == shipment_id)
            )
            return result.scalar_one_or_none()

        return await self._run("get_shipment_status", _query)

    async def update_shipment(
        self,
        shipment_id: int,
        fields: Dict[str, Any],
        expected_status: Optional[ShipmentStatus] = None,
    ) -> Optional[ShipmentResponse]:
        async def _update():
            stmt = update(Shipment).where(Shipment.id == shipment_id)
            if expected_status is not None:
                stmt = stmt.where(Shipment.status == expected_status)
            stmt = stmt.values(**fields).execution_options(synchronize_session=False)

            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                await self.db.rollback()
                logger.info(
                    f"[SHIPPING] Shipment {shipment_id} not updated "
                    f"(expected status {expected_status.value if expected_status else None})"
                )
                return None

            await self.db.commit()
            return await self._load_shipment(shipment_id)

        return await self._run("update_shipment", _update)
