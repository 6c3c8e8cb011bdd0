"""
Core Package

Contains the venue-agnostic adapter layer:
- ExchangeInterface: Capability-gated contract every venue adapter implements
- ExchangeManager: Registry that builds adapters and supervises their lifecycle
- MarketDataCache: Shared latest-snapshot store for tickers and order books
- Requester / RateLimit: Rate-limited HTTP dispatch per venue
- OrderNormalizer: Side/kind validation and venue order type mapping
- Schemas: Pydantic models for pairs, snapshots, orders and accounts

Venue packages under exchanges/ only supply the venue-specific bindings.
"""
