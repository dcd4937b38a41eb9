"""
Tests for rate pricing, rate eligibility bounds and rate/zone update schemas.
"""
import pytest
from pydantic import ValidationError

from shipping_engine.modules.shipping.pricing import price_rate, rate_accepts_package
from shipping_engine.schemas.shipping import PackageInfo, RateUpdate, ShippingRateSchema, ZoneUpdate


def make_rate(**kwargs):
    defaults = {"id": 1, "zone_id": 1, "carrier_service_id": 1}
    defaults.update(kwargs)
    return ShippingRateSchema(**defaults)


class TestPriceRate:
    """Test the cost formula."""

    def test_base_plus_per_kg(self):
        rate = make_rate(base_cost=5, per_kg_cost=2)
        assert price_rate(rate, PackageInfo(weight=3)) == 11

    def test_free_shipping_threshold_reached(self):
        rate = make_rate(base_cost=5, per_kg_cost=2, free_shipping_threshold=100)
        assert price_rate(rate, PackageInfo(weight=25, declared_value=150)) == 0.0

    def test_threshold_is_inclusive(self):
        rate = make_rate(base_cost=5, free_shipping_threshold=100)
        assert price_rate(rate, PackageInfo(weight=1, declared_value=100)) == 0.0

    def test_below_threshold_pays(self):
        rate = make_rate(base_cost=5, free_shipping_threshold=100)
        assert price_rate(rate, PackageInfo(weight=1, declared_value=99.99)) == 5

    def test_no_per_kg_cost(self):
        rate = make_rate(base_cost=7.5)
        assert price_rate(rate, PackageInfo(weight=40)) == 7.5

    def test_no_costs_is_free(self):
        assert price_rate(make_rate(), PackageInfo(weight=3)) == 0.0

    def test_rounded_to_cents(self):
        rate = make_rate(base_cost=1, per_kg_cost=0.333)
        assert price_rate(rate, PackageInfo(weight=1)) == 1.33


class TestRateAcceptsPackage:
    """Test inclusive weight and order value bounds."""

    def test_unbounded(self):
        assert rate_accepts_package(make_rate(), PackageInfo(weight=100, declared_value=10000))

    @pytest.mark.parametrize("weight,accepted", [(0.5, False), (1, True), (5, True), (5.01, False)])
    def test_weight_bounds(self, weight, accepted):
        rate = make_rate(min_weight=1, max_weight=5)
        assert rate_accepts_package(rate, PackageInfo(weight=weight)) is accepted

    @pytest.mark.parametrize("value,accepted", [(19, False), (20, True), (200, True), (201, False)])
    def test_order_amount_bounds(self, value, accepted):
        rate = make_rate(min_order_amount=20, max_order_amount=200)
        assert rate_accepts_package(rate, PackageInfo(weight=1, declared_value=value)) is accepted


class TestRateSchema:
    """Test rate configuration validation."""

    def test_inverted_weight_bounds_rejected(self):
        with pytest.raises(ValidationError):
            make_rate(min_weight=10, max_weight=5)

    def test_inverted_order_bounds_rejected(self):
        with pytest.raises(ValidationError):
            make_rate(min_order_amount=100, max_order_amount=50)

    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError):
            make_rate(base_cost=-1)

    def test_equal_bounds_allowed(self):
        rate = make_rate(min_weight=5, max_weight=5)
        assert rate_accepts_package(rate, PackageInfo(weight=5))


class TestPartialUpdateSchemas:
    """Test that partial updates cannot null NOT NULL columns."""

    @pytest.mark.parametrize("field", ["base_cost", "estimated_days", "carrier_service_id", "is_active"])
    def test_rate_update_rejects_null(self, field):
        with pytest.raises(ValidationError):
            RateUpdate.model_validate({field: None})

    @pytest.mark.parametrize("field", ["name", "country_codes", "sort_order", "is_active"])
    def test_zone_update_rejects_null(self, field):
        with pytest.raises(ValidationError):
            ZoneUpdate.model_validate({field: None})

    def test_nullable_columns_may_be_cleared(self):
        rate = RateUpdate.model_validate({"max_weight": None, "free_shipping_threshold": None})
        zone = ZoneUpdate.model_validate({"regions": None, "postal_codes": None})

        assert rate.model_dump(exclude_unset=True) == {"max_weight": None, "free_shipping_threshold": None}
        assert zone.model_dump(exclude_unset=True) == {"regions": None, "postal_codes": None}

    def test_omitted_fields_are_not_written(self):
        assert ZoneUpdate.model_validate({"name": "Cuyo"}).model_dump(exclude_unset=True) == {"name": "Cuyo"}
