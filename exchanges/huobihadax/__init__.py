"""
HuobiHadax Exchange Connector

Implements ExchangeInterface for the HuobiHadax spot venue.

Venue Characteristics:
    - Pair catalogue available, so automatic pair updates are supported
    - Request pairs are lowercase with no delimiter ("btcusdt")
    - Merged ticker carries best bid/ask as [price, amount] arrays, which
      may be empty
    - Orders are placed against an account id, passed as the client reference
    - Order ids are integers
    - Crypto withdrawals are possible via the API once set up

Implementation Status:
    Wired: pair catalogue, ticker, order book, submit, cancel, fees
    Not yet implemented: account info, funding/exchange history, modify,
    cancel-all, order info, deposit address, withdrawals
"""

from typing import List, Optional

from core.config import VenueConfig
from core.errors import PartialDataWarning, VenueError
from core.exchange_interface import ExchangeInterface
from core.logging import get_logger
from core.market_data import MarketDataCache, convert_levels, first_price, parse_float
from core.order_normalizer import OrderNormalizer, parse_order_id
from core.request import Requester
from core.schemas import (
    AccountInfo,
    AssetType,
    CurrencyPair,
    FeeBuilder,
    FeeType,
    FundHistory,
    ModifyOrder,
    OrderBookSnapshot,
    OrderCancellation,
    OrderDetail,
    OrderKind,
    OrderSide,
    PairFormat,
    SubmitOrderResponse,
    TickerSnapshot,
    TradeHistory,
    WithdrawPermissions,
)
from core.utils.time import current_utc_datetime, to_utc_datetime
from .api_client import HuobiHadaxAPIClient

logger = get_logger(__name__)

TRADING_FEE_RATE = 0.002


class HuobiHadaxExchange(ExchangeInterface):
    """
    HuobiHadax Spot Exchange Connector

    Example:
        >>> exchange = HuobiHadaxExchange()
        >>> await exchange.initialize()
        >>> ticker = await exchange.fetch_ticker(CurrencyPair(base="BTC", quote="USDT"))
        >>> book = await exchange.update_orderbook(CurrencyPair(base="BTC", quote="USDT"))
        >>> await exchange.shutdown()
    """

    name = "huobihadax"

    capabilities = {
        "auto_pair_updates": True,
        "rest": True,
        "websocket": False,
    }

    request_format = PairFormat(delimiter="", uppercase=False)
    withdraw_permissions = WithdrawPermissions.AUTO_WITHDRAW_CRYPTO_WITH_SETUP

    rate_interval = 10.0
    auth_rate = 100
    unauth_rate = 100

    depth_type = "step1"

    def __init__(
        self,
        cache: Optional[MarketDataCache] = None,
        config: Optional[VenueConfig] = None,
        requester: Optional[Requester] = None
    ):
        super().__init__(cache=cache, config=config, requester=requester)
        self.client = HuobiHadaxAPIClient(
            self.requester,
            base_url=self.config.base_url,
            api_key=self.config.api_key,
        )
        self.normalizer = OrderNormalizer(self.name, {
            (OrderSide.BUY, OrderKind.MARKET): "buy-market",
            (OrderSide.SELL, OrderKind.MARKET): "sell-market",
            (OrderSide.BUY, OrderKind.LIMIT): "buy-limit",
            (OrderSide.SELL, OrderKind.LIMIT): "sell-limit",
        })
        logger.debug(f"HuobiHadaxExchange created (base_url={self.client.base_url})")

    # ============================================
    # Pair Catalogue
    # ============================================

    async def fetch_tradable_pairs(self) -> List[str]:
        symbols = await self.client.get_symbols()
        return [
            f"{s['base-currency']}-{s['quote-currency']}".upper()
            for s in symbols
            if s.get("base-currency") and s.get("quote-currency")
        ]

    # ============================================
    # Market Data
    # ============================================

    async def update_ticker(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> TickerSnapshot:
        tick = await self.client.get_market_detail_merged(self.format_pair(pair))

        snapshot = TickerSnapshot(
            exchange=self.name,
            pair=pair,
            asset_type=asset_type,
            last=parse_float(tick.get("close"), self.name, "close"),
            high=parse_float(tick.get("high"), self.name, "high"),
            low=parse_float(tick.get("low"), self.name, "low"),
            volume=parse_float(tick.get("vol"), self.name, "vol"),
            bid=first_price(tick.get("bid"), self.name, "bid"),
            ask=first_price(tick.get("ask"), self.name, "ask"),
            timestamp=self._tick_time(tick.get("ts")),
        )
        return self.cache.process_ticker(snapshot)

    def _tick_time(self, value):
        if not value:
            return current_utc_datetime()
        try:
            return to_utc_datetime(value)
        except (TypeError, ValueError):
            logger.warning(str(PartialDataWarning(self.name, "ts", value)))
            return current_utc_datetime()

    async def update_orderbook(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> OrderBookSnapshot:
        depth = await self.client.get_depth(self.format_pair(pair), self.depth_type)

        snapshot = OrderBookSnapshot(
            exchange=self.name,
            pair=pair,
            asset_type=asset_type,
            bids=convert_levels(depth.get("bids"), self.name, "bids"),
            asks=convert_levels(depth.get("asks"), self.name, "asks"),
        )
        return self.cache.process_orderbook(snapshot)

    # ============================================
    # Account
    # ============================================

    async def get_account_info(self) -> AccountInfo:
        raise self.not_yet_implemented("get_account_info")

    async def get_funding_history(self) -> List[FundHistory]:
        raise self.not_yet_implemented("get_funding_history")

    async def get_exchange_history(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> List[TradeHistory]:
        raise self.not_yet_implemented("get_exchange_history")

    # ============================================
    # Orders
    # ============================================

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
        Place an order. The client reference is the venue account id.

        Raises:
            InvalidRequestError: Bad side/kind, amount, price or account id
            TransportError: The placement call failed in transit
        """
        request = self.normalizer.normalize(pair, side, order_kind, amount, price, client_ref)
        account_id = parse_order_id(self.name, client_ref, base=0)

        try:
            order_id = await self.client.spot_new_order(
                account_id=account_id,
                symbol=self.format_pair(request.pair),
                order_type=request.native_type,
                amount=request.amount,
                price=request.price,
            )
        except VenueError as e:
            return self.normalizer.rejected(e)

        return self.normalizer.accepted(order_id)

    async def modify_order(self, order_id: str, action: ModifyOrder) -> str:
        raise self.not_yet_implemented("modify_order")

    async def cancel_order(self, order: OrderCancellation) -> None:
        order_id = parse_order_id(self.name, order.order_id)
        await self.client.cancel_existing_order(order_id)

    async def cancel_all_orders(self) -> None:
        raise self.not_yet_implemented("cancel_all_orders")

    async def get_order_info(self, order_id: str) -> OrderDetail:
        raise self.not_yet_implemented("get_order_info")

    # ============================================
    # Funding
    # ============================================

    async def get_deposit_address(self, currency: str) -> str:
        raise self.not_yet_implemented("get_deposit_address")

    async def withdraw_crypto(self, address: str, currency: str, amount: float) -> str:
        raise self.not_yet_implemented("withdraw_crypto")

    async def withdraw_fiat(self, currency: str, amount: float) -> str:
        raise self.not_yet_implemented("withdraw_fiat")

    async def withdraw_fiat_to_bank(self, currency: str, amount: float) -> str:
        raise self.not_yet_implemented("withdraw_fiat_to_bank")

    # ============================================
    # Fees
    # ============================================

    async def get_fee_by_type(self, fee_builder: FeeBuilder) -> float:
        """Flat 0.2% on trades; other fee types are not charged here."""
        if fee_builder.fee_type == FeeType.CRYPTO_TRADE:
            return TRADING_FEE_RATE * fee_builder.purchase_price * fee_builder.amount
        return 0.0
