"""Unit tests for buy-now checkout helpers."""

from datetime import timedelta

from storefront.db.models import BuyNowSession, ShippingRule
from storefront.db.models.base import utcnow
from storefront.services.buy_now import join_sizes, shipping_options


class TestShippingOptions:
    def test_defaults(self):
        options = shipping_options(None)

        assert [o["id"] for o in options] == ["courier", "home_valley", "outside_valley"]
        assert [o["charge"] for o in options] == [100.0, 150.0, 250.0]
        assert all(o["amount"] == o["charge"] for o in options)

    def test_rule_overrides_charge_and_description(self):
        rule = ShippingRule(courier_charge=80.0, courier_desc="Pathao courier")

        courier, home, outside = shipping_options(rule)

        assert courier["charge"] == 80.0
        assert courier["description"] == "Pathao courier"
        # unset columns keep the defaults
        assert home["charge"] == 150.0
        assert outside["description"] == "Delivery outside Kathmandu Valley"


def test_join_sizes():
    assert join_sizes(["S", "M"]) == "S,M"
    assert join_sizes("L") == "L"
    assert join_sizes("") is None
    assert join_sizes(None) is None


class TestSessionModel:
    def test_expiry(self):
        now = utcnow()
        checkout = BuyNowSession(expires_at=now + timedelta(minutes=5), status="active")

        assert checkout.is_active
        assert not checkout.is_past_expiry(now)
        assert checkout.is_past_expiry(now + timedelta(minutes=5))

    def test_shipping_option_lookup(self):
        checkout = BuyNowSession(shipping_options=shipping_options(None))

        assert checkout.shipping_option("home_valley")["charge"] == 150.0
        assert checkout.shipping_option("drone") is None
