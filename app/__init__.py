"""
FastAPI Application Package

This package contains the FastAPI application and routing logic.
It serves as the entry point for the gateway, exposing the venue adapters
over REST.
"""
