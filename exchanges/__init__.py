"""
Exchange Connectors Package

This package contains individual venue adapter modules.
Each venue has its own subfolder with:
- api_client.py: REST bindings (URL building, envelope/error unwrapping)
- __init__.py: Adapter class implementing ExchangeInterface

Adding a venue means adding a subfolder and registering the adapter in
ExchangeManager; core code is not touched.
"""
