"""
Unified Logging Configuration

This module sets up the logging used by every venue adapter and by the
shared dispatcher. All modules should obtain their logger from here instead
of using print() statements.

Usage:
    from core.logging import logger, get_logger

    logger.info("Gateway starting")

    log = get_logger(__name__)
    log.debug("Fetching depth")

Log Levels (from most to least verbose):
    DEBUG    - Every dispatched request/response (venue, path, status, timing)
    INFO     - Lifecycle events (adapter started, pairs updated)
    WARNING  - Recovered problems (zeroed depth levels, venue order rejections)
    ERROR    - Transport failures surfaced to callers
    CRITICAL - Unused by the gateway itself

Configuration:
    Log level is controlled by the LOG_LEVEL setting in the .env file.
"""

import logging
import sys
from typing import Optional

LOGGER_NAMESPACE = "venuegateway"


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include logger name in log messages

    Returns:
        logging.Logger: Configured root logger of the gateway namespace

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Gateway started")
        2024-01-01 12:00:00 [INFO] venuegateway Gateway started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    root = logging.getLogger(LOGGER_NAMESPACE)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return root


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level if hasattr(settings, 'log_level') else "INFO"
except ImportError:
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger nested under the gateway namespace

    Example:
        # In exchanges/itbit/api_client.py:
        logger = get_logger(__name__)  # "venuegateway.exchanges.itbit.api_client"
    """
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def set_log_level(level: str) -> None:
    """
    Change the log level at runtime.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(exchange: str, method: str, endpoint: str, params: dict = None) -> None:
    """
    Log an outbound venue request with consistent formatting.

    Example:
        >>> log_api_request("itbit", "GET", "/markets/XBTUSD/ticker")
        [DEBUG] API Request: itbit GET /markets/XBTUSD/ticker
    """
    if params:
        logger.debug(f"API Request: {exchange} {method} {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {exchange} {method} {endpoint}")


def log_api_response(exchange: str, endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log a venue response with status and timing information.

    Example:
        >>> log_api_response("huobihadax", "/market/depth", 200, 0.342)
        [DEBUG] API Response: huobihadax /market/depth | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {exchange} {endpoint} | Status: {status}{time_str}")


logger.debug("Logging system initialized")
