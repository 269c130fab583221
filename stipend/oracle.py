"""
oracle.py - Oracle client for the vault's base asset

Turns a raw Decimal USD quote from a PriceFeed into the USD-E8 integer the
vault arithmetic works in. A missing or non-positive quote is "price unknown"
and raises OracleError; it is never substituted.
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal, ROUND_DOWN

from .core import PRICE_SCALE, OracleError, ZeroAddress
from .price_feed import PriceFeed


class OracleClient:
    """
    Read-only price query for a single asset.

    Example:
        oracle = OracleClient(StaticPriceFeed({"ETH": Decimal("3000")}), "ETH")
        oracle.current_price(ledger.current_time)   # 300000000000
    """

    def __init__(self, feed: PriceFeed, asset_symbol: str):
        if not asset_symbol or not asset_symbol.strip():
            raise ZeroAddress("oracle asset symbol cannot be empty")
        self.feed = feed
        self.asset_symbol = asset_symbol

    def current_price(self, timestamp: datetime) -> int:
        """
        Latest price of the asset at or before timestamp, in USD-E8 (truncated).

        Raises:
            OracleError: If the feed has no quote, or the quote is not positive
                         once scaled to 8 decimals
        """
        quote = self.feed.get_price(self.asset_symbol, timestamp)
        if quote is None:
            raise OracleError(f"no price for {self.asset_symbol} at {timestamp}")
        if not isinstance(quote, Decimal):
            quote = Decimal(str(quote))
        if not quote.is_finite():
            raise OracleError(f"invalid price for {self.asset_symbol}: {quote}")
        price = int((quote * PRICE_SCALE).to_integral_value(rounding=ROUND_DOWN))
        if price <= 0:
            raise OracleError(f"non-positive price for {self.asset_symbol}: {quote}")
        return price

    def __repr__(self):
        return f"OracleClient({self.asset_symbol}, feed={self.feed!r})"
