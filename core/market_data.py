"""
Market Data Cache

Holds the latest ticker and order book snapshot for each
(venue, pair, asset type) key. The cache is an explicit object owned by
the ExchangeManager and injected into every adapter, so tests can give each
adapter a fresh cache.

Semantics:
    - One live snapshot per key, replaced whole on every refresh
    - No TTL: a snapshot stays valid until superseded
    - Last write wins when two refreshes for the same key race
    - Snapshots are frozen pydantic models, so readers never see a
      half-written value

This module also holds the depth conversion used by adapters whose venues
send price/amount pairs as strings. A level that cannot be parsed is
zeroed and logged instead of failing the whole book.
"""

import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from core.errors import PartialDataWarning
from core.logging import get_logger
from core.schemas import AssetType, CurrencyPair, OrderBookLevel, OrderBookSnapshot, TickerSnapshot

logger = get_logger(__name__)

CacheKey = Tuple[str, CurrencyPair, AssetType]


def make_key(exchange: str, pair: CurrencyPair, asset_type: AssetType) -> CacheKey:
    return exchange.lower(), pair, AssetType(asset_type)


class MarketDataCache:
    """
    Keyed store of the latest market data snapshots.

    Example:
        >>> cache = MarketDataCache()
        >>> cache.process_ticker(snapshot)
        >>> cache.get_ticker("itbit", pair, AssetType.SPOT) is snapshot
        True
    """

    def __init__(self):
        self._tickers: Dict[CacheKey, TickerSnapshot] = {}
        self._orderbooks: Dict[CacheKey, OrderBookSnapshot] = {}
        self._lock = threading.Lock()

    # ============================================
    # Tickers
    # ============================================

    def get_ticker(
        self,
        exchange: str,
        pair: CurrencyPair,
        asset_type: AssetType = AssetType.SPOT
    ) -> Optional[TickerSnapshot]:
        """Return the cached ticker or None on a miss."""
        return self._tickers.get(make_key(exchange, pair, asset_type))

    def process_ticker(self, snapshot: TickerSnapshot) -> TickerSnapshot:
        """Store a ticker, replacing any previous value for its key."""
        key = make_key(snapshot.exchange, snapshot.pair, snapshot.asset_type)
        with self._lock:
            self._tickers[key] = snapshot
        return snapshot

    # ============================================
    # Order Books
    # ============================================

    def get_orderbook(
        self,
        exchange: str,
        pair: CurrencyPair,
        asset_type: AssetType = AssetType.SPOT
    ) -> Optional[OrderBookSnapshot]:
        """Return the cached order book or None on a miss."""
        return self._orderbooks.get(make_key(exchange, pair, asset_type))

    def process_orderbook(self, snapshot: OrderBookSnapshot) -> OrderBookSnapshot:
        """Store an order book, replacing any previous value for its key."""
        key = make_key(snapshot.exchange, snapshot.pair, snapshot.asset_type)
        with self._lock:
            self._orderbooks[key] = snapshot
        return snapshot

    # ============================================
    # Housekeeping
    # ============================================

    def clear(self, exchange: Optional[str] = None) -> None:
        """Drop all snapshots, or only those of one venue."""
        with self._lock:
            if exchange is None:
                self._tickers.clear()
                self._orderbooks.clear()
                return
            name = exchange.lower()
            self._tickers = {k: v for k, v in self._tickers.items() if k[0] != name}
            self._orderbooks = {k: v for k, v in self._orderbooks.items() if k[0] != name}

    def __len__(self) -> int:
        return len(self._tickers) + len(self._orderbooks)

    def __repr__(self) -> str:
        return f"<MarketDataCache(tickers={len(self._tickers)}, orderbooks={len(self._orderbooks)})>"


# ============================================
# Lenient Conversion Helpers
# ============================================

def parse_float(value, exchange: str, field: str) -> float:
    """
    Convert a venue value to float, substituting 0.0 when it cannot be parsed.

    The substitution is logged as a PartialDataWarning.
    """
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(str(PartialDataWarning(exchange, field, value)))
        return 0.0


def first_price(levels: Sequence, exchange: str, field: str) -> float:
    """
    Best price from a venue's bid/ask array.

    Accepts either a flat [price, amount] pair or a list of such pairs.
    An empty or missing array yields 0.0.
    """
    if not levels:
        return 0.0
    head = levels[0]
    if isinstance(head, (list, tuple)):
        head = head[0] if head else None
    return parse_float(head, exchange, field)


def convert_levels(raw_levels: Iterable[Sequence], exchange: str, side: str) -> List[OrderBookLevel]:
    """
    Convert raw (price, amount) pairs into OrderBookLevel objects.

    Order is preserved. Each unparsable price or amount becomes 0.0 on its
    own level, and a level that is not a sequence at all becomes (0.0, 0.0);
    the remaining levels are unaffected.

    Example:
        >>> convert_levels([["100.5", "2"], ["bad", "1"]], "itbit", "bids")
        [OrderBookLevel(price=100.5, amount=2.0), OrderBookLevel(price=0.0, amount=1.0)]
    """
    levels = []
    for index, entry in enumerate(raw_levels or []):
        if not isinstance(entry, (list, tuple)):
            entry = ()
        price_raw = entry[0] if len(entry) > 0 else None
        amount_raw = entry[1] if len(entry) > 1 else None
        levels.append(
            OrderBookLevel(
                price=parse_float(price_raw, exchange, f"{side}[{index}].price"),
                amount=parse_float(amount_raw, exchange, f"{side}[{index}].amount"),
            )
        )
    return levels
