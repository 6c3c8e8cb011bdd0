"""
Normalized Data Schemas

This module defines Pydantic models for every entity the gateway exchanges
with its callers. Regardless of which venue the data comes from, it is
normalized into these schemas so callers never deal with venue quirks.

Models:
    - VenueIdentity: Immutable description of one venue adapter
    - CurrencyPair: Canonical base/quote pair
    - TickerSnapshot: Latest ticker for a (venue, pair, asset type) key
    - OrderBookSnapshot: Latest depth for a (venue, pair, asset type) key
    - OrderIntent / OrderRequest / SubmitOrderResponse: Order submission
    - OrderCancellation: Cancellation request
    - Wallet / WalletBalance: Funding sources
    - AccountInfo, FundHistory, TradeHistory, OrderDetail: Account data
    - FeeBuilder: Fee estimation input

Snapshots are frozen: the cache replaces them whole and never mutates one
in place.
"""

from datetime import datetime
from enum import Enum, IntFlag
from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.utils.time import current_utc_datetime


# ============================================
# Enumerations
# ============================================

class AssetType(str, Enum):
    """Market category a pair trades in."""
    SPOT = "spot"


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"
    BID = "bid"
    ASK = "ask"
    ANY = "any"


class OrderKind(str, Enum):
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"
    TRAILING_STOP = "trailing_stop"
    ANY = "any"


class FeeType(str, Enum):
    CRYPTO_TRADE = "crypto_trade"
    CRYPTO_WITHDRAWAL = "crypto_withdrawal"
    CRYPTO_DEPOSIT = "crypto_deposit"
    INTERNATIONAL_BANK_DEPOSIT = "international_bank_deposit"
    INTERNATIONAL_BANK_WITHDRAWAL = "international_bank_withdrawal"


class WithdrawPermissions(IntFlag):
    """Withdrawal methods a venue permits through its API."""
    NONE = 0
    AUTO_WITHDRAW_CRYPTO = 1
    AUTO_WITHDRAW_CRYPTO_WITH_SETUP = 2
    AUTO_WITHDRAW_FIAT = 4
    WITHDRAW_CRYPTO_VIA_WEBSITE_ONLY = 8
    WITHDRAW_FIAT_VIA_WEBSITE_ONLY = 16
    NO_WITHDRAWALS = 32


# ============================================
# Currency Pair
# ============================================

PAIR_DELIMITERS = ("-", "_", "/")


class CurrencyPair(BaseModel):
    """
    Venue-agnostic currency pair.

    Base and quote codes are stored stripped and uppercase, so two pairs
    compare equal regardless of the case or delimiter they were parsed from.

    Example:
        >>> CurrencyPair.from_string("btc_usdt") == CurrencyPair(base="BTC", quote="USDT")
        True
        >>> str(CurrencyPair(base="btc", quote="usdt"))
        'BTC-USDT'
        >>> CurrencyPair(base="btc", quote="usdt").format("", uppercase=False)
        'btcusdt'
    """

    model_config = ConfigDict(frozen=True)

    base: str = Field(..., min_length=1, description="Base currency code", examples=["BTC"])
    quote: str = Field(..., min_length=1, description="Quote currency code", examples=["USDT"])

    @field_validator("base", "quote")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()

    @classmethod
    def from_string(cls, value: str, delimiter: Optional[str] = None) -> "CurrencyPair":
        """
        Parse a delimited pair string.

        Raises:
            ValueError: If no known delimiter splits the string in two
        """
        candidates = (delimiter,) if delimiter else PAIR_DELIMITERS
        for delim in candidates:
            parts = value.split(delim)
            if len(parts) == 2 and all(p.strip() for p in parts):
                return cls(base=parts[0], quote=parts[1])
        raise ValueError(f"Cannot parse currency pair '{value}'")

    def format(self, delimiter: str = "-", uppercase: bool = True) -> str:
        """Render the pair in a venue's request format."""
        text = f"{self.base}{delimiter}{self.quote}"
        return text if uppercase else text.lower()

    def __str__(self) -> str:
        return self.format()


# ============================================
# Venue Identity
# ============================================

class PairFormat(BaseModel):
    """How a venue expects pairs to be written in requests."""

    model_config = ConfigDict(frozen=True)

    delimiter: str = ""
    uppercase: bool = True


class VenueIdentity(BaseModel):
    """
    Immutable description of a venue adapter, built once at construction.

    Attributes:
        name: Venue identifier (lowercase)
        enabled: Whether the venue is enabled in configuration
        asset_types: Asset classes the venue trades
        supported_features: Features the venue can do at all
        enabled_features: Toggleable features switched on in configuration
        withdraw_permissions: Withdrawal methods allowed through the API
        request_format: Pair format used in venue requests
    """

    model_config = ConfigDict(frozen=True)

    name: str
    enabled: bool = True
    asset_types: List[AssetType] = Field(default_factory=lambda: [AssetType.SPOT])
    supported_features: FrozenSet[str] = Field(default_factory=frozenset)
    enabled_features: FrozenSet[str] = Field(default_factory=frozenset)
    withdraw_permissions: WithdrawPermissions = WithdrawPermissions.NONE
    request_format: PairFormat = Field(default_factory=PairFormat)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.lower()


# ============================================
# Market Data Snapshots
# ============================================

class BaseMarketModel(BaseModel):
    """
    Common fields for cached market data.

    The triple (exchange, pair, asset_type) is the cache key.
    """

    model_config = ConfigDict(frozen=True)

    exchange: str = Field(..., description="Source venue identifier (lowercase)", examples=["itbit"])
    pair: CurrencyPair = Field(..., description="Canonical currency pair")
    asset_type: AssetType = Field(default=AssetType.SPOT, description="Asset class")
    timestamp: datetime = Field(default_factory=current_utc_datetime, description="When the snapshot was taken (UTC)")

    @field_validator("exchange")
    @classmethod
    def validate_exchange(cls, v: str) -> str:
        return v.lower()


class TickerSnapshot(BaseMarketModel):
    """
    Ticker Data Model

    Missing bid/ask values are represented as 0.0, never as None.
    """

    last: float = Field(0.0, description="Last traded price")
    high: float = Field(0.0, description="24h high")
    low: float = Field(0.0, description="24h low")
    bid: float = Field(0.0, description="Best bid price (0 if the venue sent none)")
    ask: float = Field(0.0, description="Best ask price (0 if the venue sent none)")
    volume: float = Field(0.0, description="24h volume in base currency")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "exchange": "itbit",
                "pair": {"base": "XBT", "quote": "USD"},
                "asset_type": "spot",
                "last": 20010.5,
                "high": 20500.0,
                "low": 19800.0,
                "bid": 20010.0,
                "ask": 20011.0,
                "volume": 152.3
            }
        }
    )


class OrderBookLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: float = Field(..., description="Level price (0 if unparsable)")
    amount: float = Field(..., description="Level amount (0 if unparsable)")


class OrderBookSnapshot(BaseMarketModel):
    """
    Order Book Data Model

    Bids are ordered best (highest) first and asks best (lowest) first, in
    the order the venue returned them. The whole book is replaced on each
    refresh.
    """

    bids: List[OrderBookLevel] = Field(default_factory=list)
    asks: List[OrderBookLevel] = Field(default_factory=list)


# ============================================
# Orders
# ============================================

class OrderIntent(BaseModel):
    """
    Generic order submission intent as supplied by a caller.

    Side and kind are kept as free text here; the order normalizer decides
    whether they form a submittable combination.
    """

    pair: CurrencyPair
    side: str = Field(..., examples=["buy"])
    order_kind: str = Field(..., examples=["limit"])
    amount: float = Field(..., gt=0)
    price: float = Field(0.0, ge=0)
    client_ref: str = Field("", description="Caller reference (account id at some venues)")


class OrderRequest(BaseModel):
    """Venue-native order parameters produced by the order normalizer."""

    model_config = ConfigDict(frozen=True)

    pair: CurrencyPair
    side: OrderSide
    order_kind: OrderKind
    native_type: str = Field(..., description="Venue order type string")
    amount: float
    price: Optional[float] = Field(None, description="Only set for limit orders")
    client_ref: str = ""


class SubmitOrderResponse(BaseModel):
    """
    Outcome of an order submission.

    is_order_placed is authoritative: an order_id may be present on a
    rejected order.
    """

    order_id: str = ""
    is_order_placed: bool = False
    message: Optional[str] = None


class OrderCancellation(BaseModel):
    order_id: str
    wallet_address: Optional[str] = None
    account_id: Optional[str] = None
    pair: Optional[CurrencyPair] = None
    side: Optional[OrderSide] = None


class OrderDetail(BaseModel):
    exchange: str
    order_id: str
    pair: Optional[CurrencyPair] = None
    side: Optional[OrderSide] = None
    order_kind: Optional[OrderKind] = None
    amount: float = 0.0
    price: float = 0.0
    executed_amount: float = 0.0
    status: str = ""


class ModifyOrder(BaseModel):
    order_kind: Optional[OrderKind] = None
    price: Optional[float] = None
    amount: Optional[float] = None


# ============================================
# Accounts & Funding
# ============================================

class WalletBalance(BaseModel):
    currency: str
    available_balance: float = 0.0
    total_balance: float = 0.0

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return v.upper()


class Wallet(BaseModel):
    """A funding source that orders can be placed against."""

    id: str
    name: str = ""
    balances: List[WalletBalance] = Field(default_factory=list)


class AccountCurrencyInfo(BaseModel):
    currency: str
    total_value: float = 0.0
    hold: float = 0.0


class Account(BaseModel):
    id: str
    currencies: List[AccountCurrencyInfo] = Field(default_factory=list)


class AccountInfo(BaseModel):
    exchange: str
    accounts: List[Account] = Field(default_factory=list)


class FundHistory(BaseModel):
    exchange: str
    status: str
    transfer_id: str
    currency: str
    amount: float
    fee: float = 0.0
    timestamp: datetime


class TradeHistory(BaseModel):
    exchange: str
    trade_id: str
    pair: CurrencyPair
    side: OrderSide
    price: float
    amount: float
    timestamp: datetime


class FeeBuilder(BaseModel):
    """Input for fee estimation."""

    fee_type: FeeType
    pair: Optional[CurrencyPair] = None
    currency: Optional[str] = None
    purchase_price: float = 0.0
    amount: float = 0.0
    is_maker: bool = False
