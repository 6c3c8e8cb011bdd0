"""
Unit Tests for Exchange Interface and Manager

These tests verify that:
- ExchangeInterface is properly defined as an abstract class
- Dummy implementations can inherit and implement the interface
- Capability flags and enabled features are reflected in the identity
- fetch_* serve from the cache and only refresh on a miss
- ExchangeManager supervises startup tasks and skips disabled venues

Run with:
    pytest tests/unit/test_exchange_interface.py -v
"""

import asyncio
from typing import List

import pytest

from core.config import VenueConfig, settings
from core.errors import NotYetImplementedError, UnsupportedError
from core.exchange_interface import ExchangeInterface
from core.exchange_manager import ExchangeManager
from core.market_data import MarketDataCache
from core.schemas import (
    AssetType,
    CurrencyPair,
    OrderBookSnapshot,
    PairFormat,
    SubmitOrderResponse,
    TickerSnapshot,
    WithdrawPermissions,
)
from exchanges.huobihadax import HuobiHadaxExchange
from exchanges.itbit import ItBitExchange


BTC_USD = CurrencyPair(base="BTC", quote="USD")


# ============================================
# Dummy Exchange for Testing
# ============================================

class DummyExchange(ExchangeInterface):
    """Minimal adapter that counts venue calls instead of making them"""

    name = "dummy"

    capabilities = {
        "auto_pair_updates": True,
        "rest": True,
        "websocket": False,
    }

    request_format = PairFormat(delimiter="_", uppercase=False)
    withdraw_permissions = WithdrawPermissions.AUTO_WITHDRAW_CRYPTO

    def __init__(self, config=None, catalogue=None, **kwargs):
        super().__init__(config=config or VenueConfig(name="dummy"), **kwargs)
        self.catalogue = catalogue if catalogue is not None else ["BTC-USD", "ETH-USD"]
        self.ticker_calls = 0
        self.orderbook_calls = 0

    async def fetch_tradable_pairs(self) -> List[str]:
        if isinstance(self.catalogue, Exception):
            raise self.catalogue
        return list(self.catalogue)

    async def update_ticker(self, pair, asset_type=AssetType.SPOT):
        self.ticker_calls += 1
        return self.cache.process_ticker(
            TickerSnapshot(exchange=self.name, pair=pair, asset_type=asset_type, last=float(self.ticker_calls))
        )

    async def update_orderbook(self, pair, asset_type=AssetType.SPOT):
        self.orderbook_calls += 1
        return self.cache.process_orderbook(
            OrderBookSnapshot(exchange=self.name, pair=pair, asset_type=asset_type)
        )

    async def get_account_info(self):
        raise self.not_yet_implemented("get_account_info")

    async def get_funding_history(self):
        raise self.not_yet_implemented("get_funding_history")

    async def get_exchange_history(self, pair, asset_type=AssetType.SPOT):
        raise self.not_yet_implemented("get_exchange_history")

    async def submit_order(self, pair, side, order_kind, amount, price=0.0, client_ref=""):
        return SubmitOrderResponse(order_id="1", is_order_placed=True)

    async def modify_order(self, order_id, action):
        raise self.not_yet_implemented("modify_order")

    async def cancel_order(self, order):
        return None

    async def cancel_all_orders(self):
        raise self.not_yet_implemented("cancel_all_orders")

    async def get_order_info(self, order_id):
        raise self.not_yet_implemented("get_order_info")

    async def get_deposit_address(self, currency):
        raise self.not_yet_implemented("get_deposit_address")

    async def withdraw_crypto(self, address, currency, amount):
        raise self.unsupported("withdraw_crypto")

    async def withdraw_fiat(self, currency, amount):
        raise self.unsupported("withdraw_fiat")

    async def withdraw_fiat_to_bank(self, currency, amount):
        raise self.unsupported("withdraw_fiat_to_bank")

    async def get_fee_by_type(self, fee_builder):
        return 0.0


@pytest.fixture(autouse=True)
def no_pair_write_back(monkeypatch):
    monkeypatch.setattr(settings, "venue_config_path", "")


# ============================================
# Tests for ExchangeInterface
# ============================================

class TestExchangeInterface:
    """Test the ExchangeInterface abstract class"""

    def test_cannot_instantiate_abstract_interface(self):
        """Verify that ExchangeInterface cannot be instantiated directly"""
        with pytest.raises(TypeError):
            ExchangeInterface()

    def test_supports_method_returns_correct_values(self):
        exchange = DummyExchange()

        assert exchange.supports("rest") is True
        assert exchange.supports("websocket") is False
        assert exchange.supports("nonexistent_feature") is False

    def test_identity_reflects_class_attributes(self):
        exchange = DummyExchange()

        assert exchange.identity.name == "dummy"
        assert exchange.identity.supported_features == frozenset({"auto_pair_updates", "rest"})
        assert exchange.get_withdraw_capabilities() == WithdrawPermissions.AUTO_WITHDRAW_CRYPTO

    def test_identity_is_immutable(self):
        exchange = DummyExchange()
        with pytest.raises(Exception):
            exchange.identity.enabled = False

    def test_feature_enabled_requires_config_toggle(self):
        off = DummyExchange(config=VenueConfig(name="dummy", auto_pair_updates=False))
        on = DummyExchange(config=VenueConfig(name="dummy", auto_pair_updates=True))

        assert off.feature_enabled("auto_pair_updates") is False
        assert on.feature_enabled("auto_pair_updates") is True

    def test_format_pair_uses_request_format(self):
        assert DummyExchange().format_pair(BTC_USD) == "btc_usd"

    def test_enabled_pairs_are_parsed(self):
        exchange = DummyExchange(config=VenueConfig(name="dummy", enabled_pairs=["BTC-USD"]))
        assert exchange.enabled_pairs == [BTC_USD]

    @pytest.mark.asyncio
    async def test_not_yet_implemented_is_distinct_from_unsupported(self):
        exchange = DummyExchange()

        with pytest.raises(NotYetImplementedError) as exc_info:
            await exchange.get_funding_history()
        assert exc_info.value.operation == "get_funding_history"
        assert not isinstance(exc_info.value, UnsupportedError)

        with pytest.raises(UnsupportedError):
            await exchange.withdraw_fiat("USD", 1.0)

    @pytest.mark.asyncio
    async def test_health_check_requires_open_session(self):
        exchange = DummyExchange()
        assert await exchange.health_check() is False

        await exchange.initialize()
        try:
            assert await exchange.health_check() is True
        finally:
            await exchange.shutdown()


class TestFetchOrRefresh:
    """Test the shared cache policy"""

    @pytest.mark.asyncio
    async def test_fetch_ticker_refreshes_only_on_miss(self):
        exchange = DummyExchange(cache=MarketDataCache())

        first = await exchange.fetch_ticker(BTC_USD)
        second = await exchange.fetch_ticker(BTC_USD)

        assert exchange.ticker_calls == 1
        assert second is first

    @pytest.mark.asyncio
    async def test_update_ticker_always_refreshes(self):
        exchange = DummyExchange(cache=MarketDataCache())

        await exchange.fetch_ticker(BTC_USD)
        refreshed = await exchange.update_ticker(BTC_USD)

        assert exchange.ticker_calls == 2
        assert (await exchange.fetch_ticker(BTC_USD)) is refreshed

    @pytest.mark.asyncio
    async def test_fetch_orderbook_refreshes_only_on_miss(self):
        exchange = DummyExchange(cache=MarketDataCache())

        await exchange.fetch_orderbook(BTC_USD)
        await exchange.fetch_orderbook(BTC_USD)

        assert exchange.orderbook_calls == 1

    @pytest.mark.asyncio
    async def test_shared_cache_serves_other_adapter_instances(self):
        cache = MarketDataCache()
        writer = DummyExchange(cache=cache)
        reader = DummyExchange(cache=cache)

        await writer.update_ticker(BTC_USD)
        await reader.fetch_ticker(BTC_USD)

        assert reader.ticker_calls == 0


class TestStartup:
    """Test the background pair refresh"""

    @pytest.mark.asyncio
    async def test_startup_updates_pairs_when_enabled(self):
        exchange = DummyExchange(config=VenueConfig(name="dummy", enabled_pairs=["BTC-USD"], auto_pair_updates=True))

        await exchange.start()

        assert exchange.config.enabled_pairs == ["BTC-USD", "ETH-USD"]

    @pytest.mark.asyncio
    async def test_startup_skips_update_when_disabled(self):
        exchange = DummyExchange(config=VenueConfig(name="dummy", enabled_pairs=["BTC-USD"], auto_pair_updates=False))

        await exchange.start()

        assert exchange.config.enabled_pairs == ["BTC-USD"]

    @pytest.mark.asyncio
    async def test_startup_failure_is_logged_not_raised(self):
        exchange = DummyExchange(
            config=VenueConfig(name="dummy", enabled_pairs=["BTC-USD"], auto_pair_updates=True),
            catalogue=RuntimeError("catalogue down"),
        )

        await exchange.start()

        assert exchange.config.enabled_pairs == ["BTC-USD"]


# ============================================
# Tests for ExchangeManager
# ============================================

class TestExchangeManager:
    """Test the ExchangeManager registry"""

    def test_manager_registers_shipped_venues(self):
        manager = ExchangeManager()
        assert isinstance(manager.get_exchange("huobihadax"), HuobiHadaxExchange)
        assert isinstance(manager.get_exchange("itbit"), ItBitExchange)

    def test_manager_injects_shared_cache(self):
        manager = ExchangeManager()
        assert all(ex.cache is manager.cache for ex in manager.exchanges.values())

    def test_manager_get_exchange_case_insensitive(self):
        manager = ExchangeManager()
        assert manager.get_exchange("itbit") is manager.get_exchange("ITBIT")

    def test_manager_get_exchange_raises_for_unknown(self):
        manager = ExchangeManager()
        with pytest.raises(ValueError, match="not supported"):
            manager.get_exchange("unknown_exchange")

    def test_manager_feature_queries(self):
        manager = ExchangeManager()
        assert manager.get_exchanges_with_feature("auto_pair_updates") == ["huobihadax"]
        assert manager.get_exchange_capabilities("itbit")["rest"] is True

    def test_manager_repr_and_len(self):
        manager = ExchangeManager(exchanges=[DummyExchange()])
        assert "dummy" in repr(manager)
        assert len(manager) == 1

    @pytest.mark.asyncio
    async def test_initialize_all_skips_disabled_venues(self):
        enabled = DummyExchange(config=VenueConfig(name="dummy", enabled=True))
        disabled = DummyExchange(config=VenueConfig(name="dummy", enabled=False))
        disabled.name = "dummy_off"
        manager = ExchangeManager(exchanges=[enabled, disabled])

        await manager.initialize_all()
        try:
            assert list(manager.tasks) == ["dummy"]
            assert manager.list_enabled() == ["dummy"]
            assert disabled.requester.session is None
        finally:
            await manager.shutdown_all()

    @pytest.mark.asyncio
    async def test_shutdown_awaits_tasks_and_closes_sessions(self):
        exchange = DummyExchange(config=VenueConfig(name="dummy", auto_pair_updates=True))
        manager = ExchangeManager(exchanges=[exchange])

        await manager.initialize_all()
        task = manager.tasks["dummy"]
        await manager.shutdown_all()

        assert task.done()
        assert manager.tasks == {}
        assert exchange.requester.session is None

    @pytest.mark.asyncio
    async def test_shutdown_cancels_unfinished_tasks(self):
        exchange = DummyExchange(config=VenueConfig(name="dummy", auto_pair_updates=True))

        async def slow_catalogue():
            await asyncio.sleep(3600)
            return []

        exchange.fetch_tradable_pairs = slow_catalogue
        manager = ExchangeManager(exchanges=[exchange])

        await manager.initialize_all()
        task = manager.tasks["dummy"]
        await asyncio.sleep(0)
        await manager.shutdown_all()

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_health_check_all(self):
        manager = ExchangeManager(exchanges=[DummyExchange()])
        health = await manager.health_check_all()
        assert health == {"dummy": False}
