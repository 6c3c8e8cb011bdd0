"""
Exchange Manager - Central Registry for Venue Adapters

The ExchangeManager owns the shared MarketDataCache, builds every adapter
with it, and supervises their lifecycle:

    manager = ExchangeManager()
    await manager.initialize_all()   # open sessions, start background refresh
    ticker = await manager.get_exchange("itbit").fetch_ticker(pair)
    await manager.shutdown_all()     # await background tasks, close sessions

Each enabled adapter's startup work (pair catalogue refresh) runs as an
asyncio task held by the manager, so shutdown can cancel and await it
instead of leaving it detached. Adapters share no state across venues.
"""

import asyncio
from typing import Dict, List, Optional

from core.exchange_interface import ExchangeInterface
from core.logging import logger
from core.market_data import MarketDataCache


class ExchangeManager:
    """
    Central Manager for Venue Adapters

    Attributes:
        cache: MarketDataCache injected into every adapter
        exchanges: Mapping of venue name to adapter instance
        tasks: Background startup tasks keyed by venue name

    Example:
        >>> manager = ExchangeManager()
        >>> manager.list_exchanges()
        ['huobihadax', 'itbit']
    """

    def __init__(
        self,
        exchanges: Optional[List[ExchangeInterface]] = None,
        cache: Optional[MarketDataCache] = None
    ):
        """
        Build the registry.

        Args:
            exchanges: Adapters to register (default: every shipped venue,
                built with this manager's cache)
            cache: Shared cache (default: a fresh one)
        """
        self.cache = cache if cache is not None else MarketDataCache()

        if exchanges is None:
            # Venue packages import from core, so load them lazily
            from exchanges.huobihadax import HuobiHadaxExchange
            from exchanges.itbit import ItBitExchange

            exchanges = [
                HuobiHadaxExchange(cache=self.cache),
                ItBitExchange(cache=self.cache),
            ]

        self.exchanges: Dict[str, ExchangeInterface] = {ex.name: ex for ex in exchanges}
        self.tasks: Dict[str, asyncio.Task] = {}

        logger.info(f"ExchangeManager initialized with {len(self.exchanges)} venue(s): {', '.join(self.exchanges.keys())}")

    # ============================================
    # Exchange Retrieval Methods
    # ============================================

    def get_exchange(self, name: str) -> ExchangeInterface:
        """
        Get an adapter by name (case-insensitive).

        Raises:
            ValueError: If the venue is not registered
        """
        name = name.lower()

        if name not in self.exchanges:
            available = ", ".join(self.exchanges.keys())
            logger.error(f"Exchange '{name}' not found. Available: {available}")
            raise ValueError(
                f"Exchange '{name}' is not supported. "
                f"Available exchanges: {available}"
            )

        return self.exchanges[name]

    def has_exchange(self, name: str) -> bool:
        return name.lower() in self.exchanges

    def list_exchanges(self) -> List[str]:
        return list(self.exchanges.keys())

    def list_enabled(self) -> List[str]:
        return [name for name, ex in self.exchanges.items() if ex.enabled]

    # ============================================
    # Lifecycle Management
    # ============================================

    async def initialize_all(self) -> None:
        """
        Open sessions and start the background startup task of every
        enabled venue. Disabled venues are skipped.
        """
        logger.info("Initializing all exchanges...")

        for name, exchange in self.exchanges.items():
            if not exchange.enabled:
                logger.info(f"{name} disabled in configuration, not starting")
                continue
            try:
                await exchange.initialize()
                self.tasks[name] = exchange.start()
                logger.info(f"✓ {name} started")
            except Exception as e:
                logger.error(f"✗ Failed to initialize {name}: {e}")

        logger.info("All exchanges initialized")

    async def wait_started(self) -> None:
        """Wait until every background startup task has finished."""
        if self.tasks:
            await asyncio.gather(*self.tasks.values(), return_exceptions=True)

    async def shutdown_all(self) -> None:
        """Cancel and await background tasks, then close every session."""
        logger.info("Shutting down all exchanges...")

        for name, task in self.tasks.items():
            if not task.done():
                logger.debug(f"Cancelling {name} startup task")
                task.cancel()
        await self.wait_started()
        self.tasks.clear()

        for name, exchange in self.exchanges.items():
            try:
                await exchange.shutdown()
                logger.info(f"✓ {name} shut down")
            except Exception as e:
                logger.error(f"✗ Error shutting down {name}: {e}")

        logger.info("All exchanges shut down")

    # ============================================
    # Health & Capability Queries
    # ============================================

    async def health_check_all(self) -> Dict[str, bool]:
        health_status = {}
        for name, exchange in self.exchanges.items():
            try:
                health_status[name] = await exchange.health_check()
            except Exception as e:
                logger.error(f"Health check failed for {name}: {e}")
                health_status[name] = False
        return health_status

    def get_exchanges_with_feature(self, feature: str) -> List[str]:
        return [name for name, exchange in self.exchanges.items() if exchange.supports(feature)]

    def get_exchange_capabilities(self, name: str) -> Dict[str, bool]:
        return self.get_exchange(name).capabilities.copy()

    def __repr__(self) -> str:
        return f"<ExchangeManager(exchanges={list(self.exchanges.keys())})>"

    def __len__(self) -> int:
        return len(self.exchanges)
