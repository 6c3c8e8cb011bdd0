"""
Exchange Interface - Capability-Gated Contract for All Venues

Every venue adapter implements the same fixed operation set. An operation a
venue cannot serve is not left out: the adapter implements it and raises
UnsupportedError (the venue structurally cannot do it) or
NotYetImplementedError (the binding exists but is not wired). Callers treat
both as terminal for that call but can tell them apart.

Operation set:
    fetch_tradable_pairs, update_tradable_pairs
    update_ticker, fetch_ticker, update_orderbook, fetch_orderbook
    get_account_info, get_funding_history, get_exchange_history
    submit_order, modify_order, cancel_order, cancel_all_orders, get_order_info
    get_deposit_address, withdraw_crypto, withdraw_fiat, withdraw_fiat_to_bank
    get_fee_by_type, get_withdraw_capabilities

The fetch-or-refresh policy is shared: fetch_ticker/fetch_orderbook return
the cached snapshot when one exists and otherwise call the venue-specific
update_ticker/update_orderbook, which always go to the network and store
their result in the injected MarketDataCache.

Capabilities:
    Each venue declares which features it supports via the `capabilities`
    dict. Only "auto_pair_updates" is toggleable in configuration.

        capabilities = {
            "auto_pair_updates": True,
            "rest": True,
            "websocket": False,
        }

Example:
    exchange = manager.get_exchange("itbit")
    ticker = await exchange.fetch_ticker(CurrencyPair(base="XBT", quote="USD"))
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from core.config import VenueConfig, settings
from core.errors import NotYetImplementedError, UnsupportedError
from core.logging import get_logger
from core.market_data import MarketDataCache
from core.request import RateLimit, Requester
from core.schemas import (
    AccountInfo,
    AssetType,
    CurrencyPair,
    FeeBuilder,
    FundHistory,
    ModifyOrder,
    OrderBookSnapshot,
    OrderCancellation,
    OrderDetail,
    PairFormat,
    SubmitOrderResponse,
    TickerSnapshot,
    TradeHistory,
    VenueIdentity,
    WithdrawPermissions,
)

logger = get_logger(__name__)

TOGGLEABLE_FEATURES = ("auto_pair_updates",)


class ExchangeInterface(ABC):
    """
    Abstract Base Class for Venue Adapters

    Class Attributes (set by subclasses):
        name: Unique venue identifier (lowercase)
        capabilities: Features the venue supports
        asset_types: Asset classes the venue trades
        withdraw_permissions: Withdrawal methods allowed through the API
        request_format: How the venue writes pairs in requests
        rate_interval: Rate limit window in seconds
        auth_rate: Authenticated requests per window
        unauth_rate: Unauthenticated requests per window

    Instance Attributes:
        config: VenueConfig consumed at construction
        identity: Immutable VenueIdentity built from class attributes + config
        cache: Shared MarketDataCache
        requester: Rate-limited dispatcher owning the venue's HTTP session
    """

    name: str

    capabilities: Dict[str, bool] = {
        "auto_pair_updates": False,
        "rest": False,
        "websocket": False,
    }

    asset_types: List[AssetType] = [AssetType.SPOT]
    withdraw_permissions: WithdrawPermissions = WithdrawPermissions.NONE
    request_format: PairFormat = PairFormat()

    rate_interval: float = 1.0
    auth_rate: int = 0
    unauth_rate: int = 0

    def __init__(
        self,
        cache: Optional[MarketDataCache] = None,
        config: Optional[VenueConfig] = None,
        requester: Optional[Requester] = None
    ):
        self.config = config or settings.venue_config(self.name)
        self.cache = cache if cache is not None else MarketDataCache()
        self.requester = requester or Requester(
            self.name,
            auth_limit=RateLimit(self.rate_interval, self.auth_rate),
            unauth_limit=RateLimit(self.rate_interval, self.unauth_rate),
            timeout=settings.request_timeout,
        )

        enabled_features = set()
        if self.config.auto_pair_updates:
            enabled_features.add("auto_pair_updates")

        self.identity = VenueIdentity(
            name=self.name,
            enabled=self.config.enabled,
            asset_types=list(self.asset_types),
            supported_features=frozenset(k for k, v in self.capabilities.items() if v),
            enabled_features=frozenset(f for f in enabled_features if f in TOGGLEABLE_FEATURES),
            withdraw_permissions=self.withdraw_permissions,
            request_format=self.request_format,
        )

    # ============================================
    # Capability Helpers
    # ============================================

    @property
    def enabled(self) -> bool:
        return self.identity.enabled

    @property
    def enabled_pairs(self) -> List[CurrencyPair]:
        return [CurrencyPair.from_string(p) for p in self.config.enabled_pairs]

    def supports(self, feature: str) -> bool:
        """Check if this venue supports a feature at all."""
        return self.capabilities.get(feature, False)

    def feature_enabled(self, feature: str) -> bool:
        """Check if a feature is both supported and switched on."""
        return self.supports(feature) and feature in self.identity.enabled_features

    def format_pair(self, pair: CurrencyPair) -> str:
        """Render a pair the way this venue expects it in requests."""
        return pair.format(self.request_format.delimiter, self.request_format.uppercase)

    def unsupported(self, operation: str) -> UnsupportedError:
        return UnsupportedError(self.name, operation)

    def not_yet_implemented(self, operation: str) -> NotYetImplementedError:
        return NotYetImplementedError(self.name, operation)

    # ============================================
    # Lifecycle
    # ============================================

    async def initialize(self) -> None:
        """Open the venue's HTTP session."""
        await self.requester.start()

    async def shutdown(self) -> None:
        """Close the venue's HTTP session."""
        await self.requester.close()

    async def health_check(self) -> bool:
        """Default health: the adapter is enabled and its session is open."""
        return self.enabled and self.requester.session is not None

    async def run(self) -> None:
        """
        Venue startup work: report enabled pairs, then refresh the pair
        catalogue if auto pair updates are supported and enabled.

        Failures are logged, never raised, so one venue cannot take down
        the host.
        """
        pairs = self.config.enabled_pairs
        logger.info(f"{self.name} {len(pairs)} currencies enabled: {', '.join(pairs)}")

        if not self.feature_enabled("auto_pair_updates"):
            return

        try:
            await self.update_tradable_pairs(force=False)
        except Exception as e:
            logger.error(f"{self.name} failed to update tradable pairs: {e}")

    def start(self) -> asyncio.Task:
        """Schedule run() as a background task and return it for supervision."""
        return asyncio.create_task(self.run(), name=f"{self.name}-startup")

    # ============================================
    # Pair Catalogue
    # ============================================

    @abstractmethod
    async def fetch_tradable_pairs(self) -> List[str]:
        """
        Query the venue's symbol catalogue.

        Returns:
            List of canonical pairs ("BASE-QUOTE", uppercase)
        """
        ...

    async def update_tradable_pairs(self, force: bool = False) -> bool:
        """
        Fetch the catalogue and write it back as the enabled pair set.

        Returns:
            bool: True if the stored list changed (or force was set)
        """
        pairs = await self.fetch_tradable_pairs()
        return self.config.update_pairs(pairs, force=force)

    # ============================================
    # Market Data
    # ============================================

    @abstractmethod
    async def update_ticker(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> TickerSnapshot:
        """Fetch a fresh ticker from the venue and store it in the cache."""
        ...

    async def fetch_ticker(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> TickerSnapshot:
        """Return the cached ticker, refreshing it on a cache miss."""
        cached = self.cache.get_ticker(self.name, pair, asset_type)
        if cached is None:
            return await self.update_ticker(pair, asset_type)
        return cached

    @abstractmethod
    async def update_orderbook(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> OrderBookSnapshot:
        """Fetch a fresh order book from the venue and store it in the cache."""
        ...

    async def fetch_orderbook(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> OrderBookSnapshot:
        """Return the cached order book, refreshing it on a cache miss."""
        cached = self.cache.get_orderbook(self.name, pair, asset_type)
        if cached is None:
            return await self.update_orderbook(pair, asset_type)
        return cached

    # ============================================
    # Account
    # ============================================

    @abstractmethod
    async def get_account_info(self) -> AccountInfo:
        ...

    @abstractmethod
    async def get_funding_history(self) -> List[FundHistory]:
        ...

    @abstractmethod
    async def get_exchange_history(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> List[TradeHistory]:
        ...

    # ============================================
    # Orders
    # ============================================

    @abstractmethod
    async def submit_order(
        self,
        pair: CurrencyPair,
        side,
        order_kind,
        amount: float,
        price: float = 0.0,
        client_ref: str = ""
    ) -> SubmitOrderResponse:
        """
        Submit an order.

        Raises:
            InvalidRequestError: side/kind outside {buy,sell} x {market,limit}
            InsufficientFundsError: no funding source covers the order
            TransportError: the placement call failed in transit
        """
        ...

    @abstractmethod
    async def modify_order(self, order_id: str, action: ModifyOrder) -> str:
        ...

    @abstractmethod
    async def cancel_order(self, order: OrderCancellation) -> None:
        ...

    @abstractmethod
    async def cancel_all_orders(self) -> None:
        ...

    @abstractmethod
    async def get_order_info(self, order_id: str) -> OrderDetail:
        ...

    # ============================================
    # Funding
    # ============================================

    @abstractmethod
    async def get_deposit_address(self, currency: str) -> str:
        ...

    @abstractmethod
    async def withdraw_crypto(self, address: str, currency: str, amount: float) -> str:
        ...

    @abstractmethod
    async def withdraw_fiat(self, currency: str, amount: float) -> str:
        ...

    @abstractmethod
    async def withdraw_fiat_to_bank(self, currency: str, amount: float) -> str:
        ...

    # ============================================
    # Fees & Permissions
    # ============================================

    @abstractmethod
    async def get_fee_by_type(self, fee_builder: FeeBuilder) -> float:
        ...

    def get_withdraw_capabilities(self) -> WithdrawPermissions:
        """Withdrawal methods permitted by the venue."""
        return self.identity.withdraw_permissions

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"
