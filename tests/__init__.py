"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (cache, dispatcher,
  normalizer, venue adapters, HTTP surface). Venue traffic is faked; no
  test touches the network.

Uses pytest with pytest-asyncio for testing async functionality.
"""
