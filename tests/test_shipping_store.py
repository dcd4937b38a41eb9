"""
Tests for SQLAlchemyShippingStore against a mocked session.
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from shipping_engine.core.exceptions import TransientStoreError
from shipping_engine.core.retry import RetryConfig
from shipping_engine.models import Carrier, CarrierService, Shipment, ShipmentStatus, ShippingMethod, ShippingRate, ShippingZone
from shipping_engine.services.shipping_store import SQLAlchemyShippingStore

FAST = RetryConfig(max_attempts=3, base_delay=0.0, max_delay=0.0)


def scalars_result(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def scalar_result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def rowcount_result(count):
    result = MagicMock()
    result.rowcount = count
    return result


def db_down():
    return OperationalError("SELECT", {}, ConnectionResetError("reset"))


def make_shipment_row(status=ShipmentStatus.PROCESSING):
    now = datetime(2024, 6, 12, 12, 0, tzinfo=timezone.utc)
    return Shipment(
        id=1,
        order_id="ORD-1",
        carrier_service_id=10,
        status=status,
        shipping_address={
            "street": "Av. Cabildo",
            "number": "2040",
            "city": "Buenos Aires",
            "region": "BA",
            "postal_code": "1425",
            "country_code": "AR",
        },
        package_info={"weight": 2.0, "declared_value": 50.0},
        shipping_cost=12.0,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def store(mock_db):
    return SQLAlchemyShippingStore(mock_db, retry_config=FAST)


class TestReads:
    """Test row to schema conversion."""

    @pytest.mark.asyncio
    async def test_list_active_zones(self, store, mock_db):
        mock_db.execute.return_value = scalars_result([
            ShippingZone(id=1, name="AR", country_codes=["AR"], regions=None, postal_codes=None, is_active=True, sort_order=0),
        ])

        zones = await store.list_active_zones()

        assert zones[0].id == 1
        assert zones[0].country_codes == ["AR"]

    @pytest.mark.asyncio
    async def test_rates_carry_carrier_name(self, store, mock_db):
        carrier = Carrier(id=1, code="andreani", name="Andreani", display_name="Andreani", is_active=True)
        service = CarrierService(
            id=10, carrier_id=1, name="Standard", code="STD",
            shipping_method=ShippingMethod.STANDARD, estimated_days=5, is_active=True,
        )
        service.carrier = carrier
        rate = ShippingRate(
            id=100, zone_id=1, carrier_service_id=10, base_cost=10.0, per_kg_cost=1.0,
            max_weight=5.0, estimated_days=5, is_active=True,
        )
        rate.carrier_service = service
        mock_db.execute.return_value = scalars_result([rate])

        rates = await store.list_active_rates_for_zone(1)

        assert rates[0].carrier_service.carrier_name == "Andreani"
        assert rates[0].carrier_service.shipping_method == ShippingMethod.STANDARD

    @pytest.mark.asyncio
    async def test_missing_shipment_status(self, store, mock_db):
        mock_db.execute.return_value = scalar_result(None)
        assert await store.get_shipment_status(99) is None

    @pytest.mark.asyncio
    async def test_get_shipment(self, store, mock_db):
        mock_db.execute.return_value = scalar_result(make_shipment_row())

        shipment = await store.get_shipment(1)

        assert shipment.status == ShipmentStatus.PROCESSING
        assert shipment.shipping_address.postal_code == "1425"


class TestConditionalUpdate:
    """Test compare-and-swap status writes."""

    @pytest.mark.asyncio
    async def test_lost_race_returns_none(self, store, mock_db):
        mock_db.execute.return_value = rowcount_result(0)

        result = await store.update_shipment(
            1, {"status": ShipmentStatus.PROCESSING}, expected_status=ShipmentStatus.PENDING,
        )

        assert result is None
        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_successful_write_commits_and_reloads(self, store, mock_db):
        mock_db.execute.side_effect = [rowcount_result(1), scalar_result(make_shipment_row())]

        result = await store.update_shipment(
            1, {"status": ShipmentStatus.PROCESSING}, expected_status=ShipmentStatus.PENDING,
        )

        assert result.status == ShipmentStatus.PROCESSING
        mock_db.commit.assert_awaited_once()
        assert mock_db.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_update_statement_checks_expected_status(self, store, mock_db):
        mock_db.execute.return_value = rowcount_result(0)

        await store.update_shipment(1, {"status": ShipmentStatus.FAILED}, expected_status=ShipmentStatus.PENDING)

        stmt = mock_db.execute.call_args[0][0]
        compiled = str(stmt)
        assert "shipments.status" in compiled
        assert "shipments.id" in compiled


class TestStoreRetry:
    """Test retry and rollback around store calls."""

    @pytest.mark.asyncio
    async def test_transient_failure_retried_with_rollback(self, store, mock_db):
        mock_db.execute.side_effect = [db_down(), scalar_result(ShipmentStatus.PENDING)]

        status = await store.get_shipment_status(1)

        assert status == ShipmentStatus.PENDING
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_exhausted_retries(self, store, mock_db):
        mock_db.execute.side_effect = db_down()

        with pytest.raises(TransientStoreError) as exc_info:
            await store.list_active_zones()

        assert exc_info.value.details["operation"] == "list_active_zones"
        assert mock_db.execute.await_count == 3

    @pytest.mark.asyncio
    async def test_create_shipment_adds_and_commits(self, store, mock_db):
        row = make_shipment_row(status=ShipmentStatus.PENDING)
        fields = {c: getattr(row, c) for c in (
            "order_id", "carrier_service_id", "status", "shipping_address",
            "package_info", "shipping_cost", "created_at", "updated_at",
        )}

        async def assign_id(obj):
            obj.id = 5

        mock_db.refresh.side_effect = assign_id

        shipment = await store.create_shipment(fields)

        assert shipment.id == 5
        assert shipment.status == ShipmentStatus.PENDING
        mock_db.add.assert_called_once()
        mock_db.commit.assert_awaited_once()
