"""
test_price_feed.py - Unit tests for price feeds and the oracle client

Tests:
- StaticPriceFeed lookups and updates
- TimeSeriesPriceFeed as-of lookups
- OracleClient scaling to USD-E8 and failure modes
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from stipend import (
    StaticPriceFeed, TimeSeriesPriceFeed, PriceFeed, OracleClient,
    OracleError, ZeroAddress,
)


T0 = datetime(2025, 1, 1)


class TestStaticPriceFeed:

    def test_get_price(self):
        feed = StaticPriceFeed({"ETH": Decimal("3000")})
        assert feed.get_price("ETH", T0) == Decimal("3000")
        assert feed.get_price("ETH", T0 + timedelta(days=365)) == Decimal("3000")

    def test_unknown_symbol(self):
        assert StaticPriceFeed().get_price("ETH", T0) is None

    def test_update_price(self):
        feed = StaticPriceFeed({"ETH": Decimal("3000")})
        feed.update_price("ETH", Decimal("3500.5"))
        assert feed.get_price("ETH", T0) == Decimal("3500.5")

    def test_float_inputs_converted_via_str(self):
        feed = StaticPriceFeed({"ETH": 0.1})
        assert feed.get_price("ETH", T0) == Decimal("0.1")

    def test_is_a_price_feed(self):
        assert isinstance(StaticPriceFeed(), PriceFeed)
        assert isinstance(TimeSeriesPriceFeed(), PriceFeed)


class TestTimeSeriesPriceFeed:

    def test_as_of_lookup(self):
        feed = TimeSeriesPriceFeed({
            "ETH": [
                (T0 + timedelta(days=2), Decimal("2200")),
                (T0, Decimal("2000")),
            ],
        })
        assert feed.get_price("ETH", T0) == Decimal("2000")
        assert feed.get_price("ETH", T0 + timedelta(days=1)) == Decimal("2000")
        assert feed.get_price("ETH", T0 + timedelta(days=2)) == Decimal("2200")
        assert feed.get_price("ETH", T0 + timedelta(days=30)) == Decimal("2200")

    def test_before_first_observation(self):
        feed = TimeSeriesPriceFeed({"ETH": [(T0, Decimal("2000"))]})
        assert feed.get_price("ETH", T0 - timedelta(seconds=1)) is None

    def test_add_price_keeps_order(self):
        feed = TimeSeriesPriceFeed()
        feed.add_price("ETH", T0 + timedelta(days=5), Decimal("2500"))
        feed.add_price("ETH", T0, Decimal("2000"))
        assert feed.get_price("ETH", T0 + timedelta(days=3)) == Decimal("2000")

    def test_empty_path_ignored(self):
        feed = TimeSeriesPriceFeed({"ETH": []})
        assert feed.get_price("ETH", T0) is None
        assert "0 symbols" in repr(feed)


class TestOracleClient:

    def test_scales_to_usd_e8(self):
        oracle = OracleClient(StaticPriceFeed({"ETH": Decimal("3000")}), "ETH")
        assert oracle.current_price(T0) == 300_000_000_000

    def test_truncates_beyond_eight_decimals(self):
        oracle = OracleClient(StaticPriceFeed({"ETH": Decimal("1.123456789")}), "ETH")
        assert oracle.current_price(T0) == 112_345_678

    def test_missing_price(self):
        oracle = OracleClient(StaticPriceFeed(), "ETH")
        with pytest.raises(OracleError, match="no price"):
            oracle.current_price(T0)

    @pytest.mark.parametrize("quote", [Decimal("0"), Decimal("-1"), Decimal("0.000000001")])
    def test_non_positive_price(self, quote):
        oracle = OracleClient(StaticPriceFeed({"ETH": quote}), "ETH")
        with pytest.raises(OracleError, match="non-positive"):
            oracle.current_price(T0)

    def test_non_finite_price(self):
        oracle = OracleClient(StaticPriceFeed({"ETH": Decimal("NaN")}), "ETH")
        with pytest.raises(OracleError, match="invalid"):
            oracle.current_price(T0)

    def test_follows_time_series(self):
        feed = TimeSeriesPriceFeed({"ETH": [(T0, Decimal("2000")), (T0 + timedelta(days=1), Decimal("4000"))]})
        oracle = OracleClient(feed, "ETH")
        assert oracle.current_price(T0 + timedelta(hours=12)) == 200_000_000_000
        assert oracle.current_price(T0 + timedelta(days=1)) == 400_000_000_000

    def test_empty_symbol(self):
        with pytest.raises(ZeroAddress):
            OracleClient(StaticPriceFeed(), "")
