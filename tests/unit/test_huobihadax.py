"""
Unit Tests for the HuobiHadax Adapter

The adapter's Requester is replaced with an AsyncMock, so these tests cover
URL building, envelope unwrapping and normalization without any network.

Run with:
    pytest tests/unit/test_huobihadax.py -v
"""

import logging
from unittest.mock import AsyncMock

import pytest

from core.config import VenueConfig, settings
from core.errors import InvalidRequestError, NotYetImplementedError, VenueError
from core.market_data import MarketDataCache
from core.schemas import CurrencyPair, FeeBuilder, FeeType, ModifyOrder, OrderCancellation, WithdrawPermissions
from exchanges.huobihadax import HuobiHadaxExchange


BTC_USDT = CurrencyPair(base="BTC", quote="USDT")


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def exchange(monkeypatch):
    monkeypatch.setattr(settings, "venue_config_path", "")
    ex = HuobiHadaxExchange(
        cache=MarketDataCache(),
        config=VenueConfig(
            name="huobihadax",
            api_key="key",
            api_secret="secret",
            enabled_pairs=["BTC-USDT"],
            auto_pair_updates=True,
        ),
    )
    ex.requester.send = AsyncMock()
    return ex


def sent(exchange, index=-1):
    """(method, url, kwargs) of a recorded requester call"""
    call = exchange.requester.send.call_args_list[index]
    return call.args[0], call.args[1], call.kwargs


# ============================================
# Identity
# ============================================

class TestIdentity:

    def test_declared_capabilities(self, exchange):
        assert exchange.name == "huobihadax"
        assert exchange.supports("auto_pair_updates") is True
        assert exchange.feature_enabled("auto_pair_updates") is True
        assert exchange.get_withdraw_capabilities() == WithdrawPermissions.AUTO_WITHDRAW_CRYPTO_WITH_SETUP

    def test_rate_limits(self, exchange):
        assert exchange.requester.auth_limit.interval == 10.0
        assert exchange.requester.auth_limit.quota == 100
        assert exchange.requester.unauth_limit.quota == 100

    def test_request_pair_format(self, exchange):
        assert exchange.format_pair(BTC_USDT) == "btcusdt"


# ============================================
# Pair Catalogue
# ============================================

class TestPairs:

    @pytest.mark.asyncio
    async def test_fetch_tradable_pairs(self, exchange):
        exchange.requester.send.return_value = {
            "status": "ok",
            "data": [
                {"base-currency": "btc", "quote-currency": "usdt"},
                {"base-currency": "eth", "quote-currency": "btc"},
            ],
        }

        pairs = await exchange.fetch_tradable_pairs()

        assert pairs == ["BTC-USDT", "ETH-BTC"]
        method, url, _ = sent(exchange)
        assert method == "GET"
        assert url == "https://api.hadax.com/v1/common/symbols"

    @pytest.mark.asyncio
    async def test_update_tradable_pairs_writes_enabled_pairs(self, exchange):
        exchange.requester.send.return_value = {
            "status": "ok",
            "data": [{"base-currency": "eth", "quote-currency": "usdt"}],
        }

        assert await exchange.update_tradable_pairs() is True
        assert exchange.config.enabled_pairs == ["ETH-USDT"]

    @pytest.mark.asyncio
    async def test_error_envelope_raises_venue_error(self, exchange):
        exchange.requester.send.return_value = {"status": "error", "err-code": "bad-request", "err-msg": "invalid"}

        with pytest.raises(VenueError, match="invalid"):
            await exchange.fetch_tradable_pairs()


# ============================================
# Market Data
# ============================================

class TestMarketData:

    @pytest.mark.asyncio
    async def test_update_ticker_normalizes_and_caches(self, exchange):
        exchange.requester.send.return_value = {
            "status": "ok",
            "ts": 1704110400000,
            "tick": {
                "close": 42000.5, "high": 43000.0, "low": 41000.0, "vol": 12.5,
                "bid": [42000.0, 1.2], "ask": [42001.0, 0.8],
            },
        }

        ticker = await exchange.update_ticker(BTC_USDT)

        assert ticker.last == 42000.5
        assert ticker.bid == 42000.0
        assert ticker.ask == 42001.0
        assert ticker.volume == 12.5
        assert ticker.timestamp.year == 2024
        assert exchange.cache.get_ticker("huobihadax", BTC_USDT) is ticker
        _, _, kwargs = sent(exchange)
        assert kwargs["params"] == {"symbol": "btcusdt"}

    @pytest.mark.asyncio
    async def test_empty_bid_ask_arrays_become_zero(self, exchange):
        exchange.requester.send.return_value = {
            "status": "ok",
            "tick": {"close": 1.0, "high": 1.0, "low": 1.0, "vol": 1.0, "bid": [], "ask": []},
        }

        ticker = await exchange.update_ticker(BTC_USDT)

        assert ticker.bid == 0.0
        assert ticker.ask == 0.0

    @pytest.mark.asyncio
    async def test_unparsable_timestamp_falls_back_to_now(self, exchange, caplog):
        exchange.requester.send.return_value = {
            "status": "ok",
            "ts": "not-a-time",
            "tick": {"close": 1.0, "high": 1.0, "low": 1.0, "vol": 1.0, "bid": [1.0, 1.0], "ask": [1.0, 1.0]},
        }

        with caplog.at_level(logging.WARNING):
            ticker = await exchange.update_ticker(BTC_USDT)

        assert ticker.last == 1.0
        assert ticker.timestamp.tzinfo is not None
        assert "could not parse ts" in caplog.text

    @pytest.mark.asyncio
    async def test_fetch_ticker_uses_cache(self, exchange):
        exchange.requester.send.return_value = {
            "status": "ok",
            "tick": {"close": 1.0, "high": 1.0, "low": 1.0, "vol": 1.0, "bid": [1.0, 1.0], "ask": [1.0, 1.0]},
        }

        await exchange.fetch_ticker(BTC_USDT)
        await exchange.fetch_ticker(BTC_USDT)

        assert exchange.requester.send.await_count == 1

    @pytest.mark.asyncio
    async def test_update_orderbook(self, exchange):
        exchange.requester.send.return_value = {
            "status": "ok",
            "tick": {"bids": [[42000.0, 1.0], [41999.0, 2.0]], "asks": [[42001.0, 0.5]]},
        }

        book = await exchange.update_orderbook(BTC_USDT)

        assert [(b.price, b.amount) for b in book.bids] == [(42000.0, 1.0), (41999.0, 2.0)]
        assert book.asks[0].price == 42001.0
        _, _, kwargs = sent(exchange)
        assert kwargs["params"] == {"symbol": "btcusdt", "type": "step1"}


# ============================================
# Orders
# ============================================

class TestOrders:

    @pytest.mark.asyncio
    async def test_submit_limit_order(self, exchange):
        exchange.requester.send.return_value = {"status": "ok", "data": "59378"}

        response = await exchange.submit_order(BTC_USDT, "buy", "limit", 1.0, 20000.0, client_ref="12345")

        assert response.is_order_placed is True
        assert response.order_id == "59378"
        method, url, kwargs = sent(exchange)
        assert method == "POST"
        assert url.endswith("/v1/order/orders/place")
        assert kwargs["auth"] is True
        assert kwargs["json"] == {
            "account-id": "12345",
            "amount": "1.0",
            "price": "20000.0",
            "source": "api",
            "symbol": "btcusdt",
            "type": "buy-limit",
        }

    @pytest.mark.asyncio
    async def test_submit_market_order_has_no_price(self, exchange):
        exchange.requester.send.return_value = {"status": "ok", "data": "1"}

        await exchange.submit_order(BTC_USDT, "sell", "market", 0.5, client_ref="0x10")

        _, _, kwargs = sent(exchange)
        assert "price" not in kwargs["json"]
        assert kwargs["json"]["type"] == "sell-market"
        assert kwargs["json"]["account-id"] == "16"

    @pytest.mark.asyncio
    async def test_venue_rejection_is_unplaced_response(self, exchange):
        exchange.requester.send.return_value = {
            "status": "error",
            "err-code": "account-frozen-balance-insufficient-error",
            "err-msg": "trade account balance is not enough",
        }

        response = await exchange.submit_order(BTC_USDT, "buy", "limit", 1.0, 20000.0, client_ref="1")

        assert response.is_order_placed is False
        assert response.message == "trade account balance is not enough"

    @pytest.mark.asyncio
    async def test_invalid_account_reference_rejected_before_call(self, exchange):
        with pytest.raises(InvalidRequestError):
            await exchange.submit_order(BTC_USDT, "buy", "market", 1.0, client_ref="main")

        exchange.requester.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsupported_order_type_rejected_before_call(self, exchange):
        with pytest.raises(InvalidRequestError):
            await exchange.submit_order(BTC_USDT, "buy", "stop", 1.0, 100.0, client_ref="1")

        exchange.requester.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_order(self, exchange):
        exchange.requester.send.return_value = {"status": "ok", "data": "59378"}

        await exchange.cancel_order(OrderCancellation(order_id="59378"))

        method, url, _ = sent(exchange)
        assert method == "POST"
        assert url.endswith("/v1/order/orders/59378/submitcancel")

    @pytest.mark.asyncio
    async def test_cancel_non_numeric_id_rejected(self, exchange):
        with pytest.raises(InvalidRequestError):
            await exchange.cancel_order(OrderCancellation(order_id="abc"))

        exchange.requester.send.assert_not_awaited()


# ============================================
# Capability Gaps & Fees
# ============================================

class TestCapabilityGaps:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation,args", [
        ("get_account_info", ()),
        ("get_funding_history", ()),
        ("get_exchange_history", (BTC_USDT,)),
        ("modify_order", ("1", ModifyOrder(price=1.0))),
        ("cancel_all_orders", ()),
        ("get_order_info", ("1",)),
        ("get_deposit_address", ("BTC",)),
        ("withdraw_crypto", ("addr", "BTC", 1.0)),
        ("withdraw_fiat", ("USD", 1.0)),
        ("withdraw_fiat_to_bank", ("USD", 1.0)),
    ])
    async def test_not_yet_implemented(self, exchange, operation, args):
        with pytest.raises(NotYetImplementedError):
            await getattr(exchange, operation)(*args)

    @pytest.mark.asyncio
    async def test_trade_fee(self, exchange):
        fee = await exchange.get_fee_by_type(
            FeeBuilder(fee_type=FeeType.CRYPTO_TRADE, purchase_price=20000.0, amount=1.0)
        )
        assert fee == pytest.approx(40.0)

    @pytest.mark.asyncio
    async def test_other_fee_types_are_zero(self, exchange):
        fee = await exchange.get_fee_by_type(FeeBuilder(fee_type=FeeType.CRYPTO_WITHDRAWAL, amount=1.0))
        assert fee == 0.0
