"""
price_feed.py - USD price feeds for the vault's base asset

Classes:
- PriceFeed: Protocol defining the feed interface
- StaticPriceFeed: Time-independent quotes, updatable in place
- TimeSeriesPriceFeed: Time-varying quotes with historical data

Feeds return raw Decimal USD quotes exactly as reported, including zero or
negative values from a faulty source. Validation and scaling to USD-E8 is
the job of the OracleClient.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, List, Tuple, Protocol, runtime_checkable
from bisect import bisect_right


@runtime_checkable
class PriceFeed(Protocol):
    """
    Protocol for price feeds.

    A feed provides the USD price of an asset symbol as of a timestamp, or
    None when it has never reported one.
    """

    def get_price(self, symbol: str, timestamp: datetime) -> Optional[Decimal]:
        """Get the latest quote for symbol at or before timestamp."""
        ...


class StaticPriceFeed:
    """
    Feed with static quotes (time-independent).

    Quotes remain constant regardless of timestamp until update_price() is called.
    """

    def __init__(self, prices: Optional[Dict[str, Decimal]] = None):
        """
        Args:
            prices: Dictionary mapping asset symbols to USD quotes
        """
        self.prices: Dict[str, Decimal] = {
            symbol: Decimal(str(price)) for symbol, price in (prices or {}).items()
        }

    def get_price(self, symbol: str, timestamp: datetime) -> Optional[Decimal]:
        """Get static quote (timestamp is ignored)."""
        return self.prices.get(symbol)

    def update_price(self, symbol: str, price: Decimal):
        """Update the quote of an asset."""
        self.prices[symbol] = Decimal(str(price))

    def __repr__(self):
        return f"StaticPriceFeed({len(self.prices)} prices)"


class TimeSeriesPriceFeed:
    """
    Feed with time-varying quotes.

    Returns the most recent quote at or before the requested timestamp.

    Supports two initialization patterns:
    - Empty initialization for incremental updates via add_price()
    - Batch initialization with complete price paths for simulations
    """

    def __init__(self, price_paths: Optional[Dict[str, List[Tuple[datetime, Decimal]]]] = None):
        """
        Args:
            price_paths: Optional dict mapping symbols to lists of (timestamp, price) tuples.

        Examples:
            feed = TimeSeriesPriceFeed()
            feed.add_price('ETH', datetime(2025, 1, 15), Decimal("3150.25"))

            feed = TimeSeriesPriceFeed({
                'ETH': [(t0, Decimal("3000")), (t1, Decimal("3100"))],
            })
        """
        self.price_history: Dict[str, List[Tuple[datetime, Decimal]]] = {}

        if price_paths:
            for symbol, path in price_paths.items():
                if not path:
                    continue
                self.price_history[symbol] = sorted(
                    ((ts, Decimal(str(price))) for ts, price in path),
                    key=lambda x: x[0],
                )

    def add_price(self, symbol: str, timestamp: datetime, price: Decimal):
        """Add a quote for a symbol at a specific time."""
        history = self.price_history.setdefault(symbol, [])
        history.append((timestamp, Decimal(str(price))))
        history.sort(key=lambda x: x[0])

    def get_price(self, symbol: str, timestamp: datetime) -> Optional[Decimal]:
        """
        Get quote at or before the specified timestamp.

        Returns None if no quote is available before the timestamp.
        Uses binary search for O(log n) lookup.
        """
        history = self.price_history.get(symbol)
        if not history:
            return None

        timestamps = [ts for ts, _ in history]
        idx = bisect_right(timestamps, timestamp)
        if idx == 0:
            return None
        return history[idx - 1][1]

    def __repr__(self):
        total_observations = sum(len(history) for history in self.price_history.values())
        return f"TimeSeriesPriceFeed({len(self.price_history)} symbols, {total_observations} observations)"
