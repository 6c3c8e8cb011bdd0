"""
itBit Exchange Connector

Implements ExchangeInterface for the itBit spot venue.

Venue Characteristics:
    - No symbol catalogue endpoint: pair updates are unsupported, the
      enabled pairs come from configuration only
    - Request pairs are uppercase with no delimiter ("XBTUSD")
    - Ticker and depth values are strings
    - Orders must be funded from a wallet; the adapter picks the first
      wallet with enough of the pair's base currency
    - Cancellation is scoped to the wallet the order was placed from
    - Withdrawals are only possible through the website
"""

from typing import List, Optional

from core.config import VenueConfig
from core.errors import InvalidRequestError, PartialDataWarning, VenueError
from core.exchange_interface import ExchangeInterface
from core.logging import get_logger
from core.market_data import MarketDataCache, convert_levels, parse_float
from core.order_normalizer import OrderNormalizer
from core.request import Requester
from core.schemas import (
    Account,
    AccountCurrencyInfo,
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
    Wallet,
    WalletBalance,
    WithdrawPermissions,
)
from core.utils.time import current_utc_datetime, parse_utc_datetime
from .api_client import ItBitAPIClient

logger = get_logger(__name__)

MAKER_FEE_RATE = -0.0003
TAKER_FEE_RATE = 0.0035


class ItBitExchange(ExchangeInterface):
    """
    itBit Spot Exchange Connector

    Example:
        >>> exchange = ItBitExchange()
        >>> await exchange.initialize()
        >>> response = await exchange.submit_order(
        ...     CurrencyPair(base="XBT", quote="USD"), "buy", "limit", 1.0, 20000.0
        ... )
        >>> response.is_order_placed
        True
    """

    name = "itbit"

    capabilities = {
        "auto_pair_updates": False,
        "rest": True,
        "websocket": False,
    }

    request_format = PairFormat(delimiter="", uppercase=True)
    withdraw_permissions = (
        WithdrawPermissions.WITHDRAW_CRYPTO_VIA_WEBSITE_ONLY
        | WithdrawPermissions.WITHDRAW_FIAT_VIA_WEBSITE_ONLY
    )

    rate_interval = 1.0
    auth_rate = 10
    unauth_rate = 10

    def __init__(
        self,
        cache: Optional[MarketDataCache] = None,
        config: Optional[VenueConfig] = None,
        requester: Optional[Requester] = None
    ):
        super().__init__(cache=cache, config=config, requester=requester)
        self.client = ItBitAPIClient(
            self.requester,
            base_url=self.config.base_url,
            api_key=self.config.api_key,
            client_id=self.config.client_id,
        )
        self.normalizer = OrderNormalizer(self.name, {
            (OrderSide.BUY, OrderKind.MARKET): "market",
            (OrderSide.SELL, OrderKind.MARKET): "market",
            (OrderSide.BUY, OrderKind.LIMIT): "limit",
            (OrderSide.SELL, OrderKind.LIMIT): "limit",
        })
        if not self.config.client_id:
            logger.debug("itBit client id not configured; wallet calls will be unscoped")

    # ============================================
    # Pair Catalogue
    # ============================================

    async def fetch_tradable_pairs(self) -> List[str]:
        raise self.unsupported("fetch_tradable_pairs")

    # ============================================
    # Market Data
    # ============================================

    async def update_ticker(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> TickerSnapshot:
        tick = await self.client.get_ticker(self.format_pair(pair))

        snapshot = TickerSnapshot(
            exchange=self.name,
            pair=pair,
            asset_type=asset_type,
            last=parse_float(tick.get("lastPrice") or 0, self.name, "lastPrice"),
            high=parse_float(tick.get("high24h") or 0, self.name, "high24h"),
            low=parse_float(tick.get("low24h") or 0, self.name, "low24h"),
            volume=parse_float(tick.get("volume24h") or 0, self.name, "volume24h"),
            bid=parse_float(tick.get("bid") or 0, self.name, "bid"),
            ask=parse_float(tick.get("ask") or 0, self.name, "ask"),
            timestamp=self._server_time(tick.get("serverTimeUTC")),
        )
        return self.cache.process_ticker(snapshot)

    async def update_orderbook(self, pair: CurrencyPair, asset_type: AssetType = AssetType.SPOT) -> OrderBookSnapshot:
        depth = await self.client.get_orderbook(self.format_pair(pair))

        snapshot = OrderBookSnapshot(
            exchange=self.name,
            pair=pair,
            asset_type=asset_type,
            bids=convert_levels(depth.get("bids"), self.name, "bids"),
            asks=convert_levels(depth.get("asks"), self.name, "asks"),
        )
        return self.cache.process_orderbook(snapshot)

    def _server_time(self, value):
        if not value:
            return current_utc_datetime()
        try:
            return parse_utc_datetime(value)
        except ValueError:
            logger.warning(str(PartialDataWarning(self.name, "serverTimeUTC", value)))
            return current_utc_datetime()

    # ============================================
    # Account
    # ============================================

    async def get_wallets(self) -> List[Wallet]:
        """Enumerate funding sources."""
        raw_wallets = await self.client.get_wallets()
        return [
            Wallet(
                id=w["id"],
                name=w.get("name", ""),
                balances=[
                    WalletBalance(
                        currency=b["currency"],
                        available_balance=parse_float(b.get("availableBalance"), self.name, "availableBalance"),
                        total_balance=parse_float(b.get("totalBalance"), self.name, "totalBalance"),
                    )
                    for b in w.get("balances", [])
                ],
            )
            for w in raw_wallets
        ]

    async def get_account_info(self) -> AccountInfo:
        wallets = await self.get_wallets()
        return AccountInfo(
            exchange=self.name,
            accounts=[
                Account(
                    id=wallet.id,
                    currencies=[
                        AccountCurrencyInfo(
                            currency=b.currency,
                            total_value=b.total_balance,
                            hold=max(b.total_balance - b.available_balance, 0.0),
                        )
                        for b in wallet.balances
                    ],
                )
                for wallet in wallets
            ],
        )

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
        Place an order funded from the first wallet that can cover it.

        Raises:
            InvalidRequestError: Bad side/kind, amount or price
            InsufficientFundsError: No wallet holds `amount` of the base currency
            TransportError: Wallet enumeration or placement failed in transit
        """
        request = self.normalizer.normalize(pair, side, order_kind, amount, price, client_ref)

        wallets = await self.get_wallets()
        wallet = self.normalizer.select_funding_source(wallets, request.pair.base, request.amount)

        try:
            response = await self.client.place_order(
                wallet_id=wallet.id,
                side=request.side.value,
                order_type=request.native_type,
                currency=request.pair.base,
                amount=request.amount,
                price=request.price,
                instrument=self.format_pair(request.pair),
                client_ref=request.client_ref,
            )
        except VenueError as e:
            return self.normalizer.rejected(e)

        return self.normalizer.accepted(response.get("id"))

    async def modify_order(self, order_id: str, action: ModifyOrder) -> str:
        raise self.not_yet_implemented("modify_order")

    async def cancel_order(self, order: OrderCancellation) -> None:
        if not order.wallet_address:
            raise InvalidRequestError(
                f"{self.name}: cancelling order {order.order_id} requires a wallet address",
                self.name
            )
        await self.client.cancel_existing_order(order.wallet_address, order.order_id)

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
        """0.35% taker, 0.03% maker rebate on trades; other fee types are 0."""
        if fee_builder.fee_type == FeeType.CRYPTO_TRADE:
            rate = MAKER_FEE_RATE if fee_builder.is_maker else TAKER_FEE_RATE
            return rate * fee_builder.purchase_price * fee_builder.amount
        return 0.0
