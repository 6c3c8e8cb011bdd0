"""
Configuration Management Module

This module handles loading, validating, and providing access to gateway
configuration from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Per-venue enabled flag, credentials, base URL and enabled pairs
- Builds a VenueConfig for each adapter, consumed once at construction
- Writes refreshed pair lists back to an optional JSON file

Usage:
    from core.config import settings

    cfg = settings.venue_config("itbit")
    print(cfg.enabled_pairs)
"""

import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.schemas import CurrencyPair


# ============================================
# Per-Venue Configuration
# ============================================

class VenueConfig(BaseModel):
    """
    Configuration consumed by one venue adapter.

    Attributes:
        name: Venue identifier (lowercase)
        enabled: If False the adapter is registered but never started
        api_key: API key for authenticated endpoints
        api_secret: API secret for authenticated endpoints
        client_id: Venue user/client identifier (itBit wallets are scoped to it)
        base_url: Override of the venue REST base URL (empty = venue default)
        enabled_pairs: Canonical pairs ("BASE-QUOTE") the adapter works with
        auto_pair_updates: Whether the pair catalogue refresh is switched on
    """

    name: str
    enabled: bool = True
    api_key: str = ""
    api_secret: str = ""
    client_id: str = ""
    base_url: str = ""
    enabled_pairs: List[str] = Field(default_factory=list)
    auto_pair_updates: bool = False

    @property
    def authenticated(self) -> bool:
        return bool(self.api_key and self.api_secret)

    def update_pairs(self, pairs: List[str], force: bool = False) -> bool:
        """
        Replace the enabled pair list.

        Args:
            pairs: New canonical pair list
            force: Write even if the list did not change

        Returns:
            bool: True if the list was written (and persisted)
        """
        from core.logging import get_logger
        logger = get_logger(__name__)

        new_pairs = [p.upper() for p in pairs]
        added = sorted(set(new_pairs) - set(self.enabled_pairs))
        removed = sorted(set(self.enabled_pairs) - set(new_pairs))

        if not force and not added and not removed:
            logger.debug(f"{self.name}: pair list unchanged ({len(new_pairs)} pairs)")
            return False

        if added:
            logger.info(f"{self.name}: adding pairs {', '.join(added)}")
        if removed:
            logger.info(f"{self.name}: removing pairs {', '.join(removed)}")

        self.enabled_pairs = new_pairs
        save_venue_config(self)
        return True


# ============================================
# Application Settings
# ============================================

class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.
    Venue settings follow the pattern <venue>_<field>, e.g. ITBIT_API_KEY.
    """

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(default="0.0.0.0", description="FastAPI server host address")
    app_port: int = Field(default=8000, description="FastAPI server port")
    environment: str = Field(default="development", description="Application environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # ============================================
    # Dispatcher
    # ============================================

    request_timeout: float = Field(
        default=15.0,
        description="HTTP request timeout in seconds, shared by every venue transport"
    )

    venue_config_path: str = Field(
        default="",
        description="JSON file that receives pair list write-backs (empty = in-memory only)"
    )

    # ============================================
    # HuobiHadax
    # ============================================

    huobihadax_enabled: bool = Field(default=True)
    huobihadax_api_key: str = Field(default="")
    huobihadax_api_secret: str = Field(default="")
    huobihadax_base_url: str = Field(default="")
    huobihadax_enabled_pairs: str = Field(default="BTC-USDT,ETH-USDT")
    huobihadax_auto_pair_updates: bool = Field(default=True)

    # ============================================
    # itBit
    # ============================================

    itbit_enabled: bool = Field(default=True)
    itbit_api_key: str = Field(default="")
    itbit_api_secret: str = Field(default="")
    itbit_client_id: str = Field(default="")
    itbit_base_url: str = Field(default="")
    itbit_enabled_pairs: str = Field(default="XBT-USD,XBT-SGD,XBT-EUR")
    itbit_auto_pair_updates: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def venue_config(self, name: str) -> VenueConfig:
        """
        Build the configuration for one venue.

        A pair list previously written to venue_config_path takes precedence
        over the environment value.

        Example:
            >>> settings.venue_config("itbit").enabled_pairs
            ['XBT-USD', 'XBT-SGD', 'XBT-EUR']
        """
        name = name.lower()
        raw_pairs = getattr(self, f"{name}_enabled_pairs", "")
        cfg = VenueConfig(
            name=name,
            enabled=getattr(self, f"{name}_enabled", True),
            api_key=getattr(self, f"{name}_api_key", ""),
            api_secret=getattr(self, f"{name}_api_secret", ""),
            client_id=getattr(self, f"{name}_client_id", ""),
            base_url=getattr(self, f"{name}_base_url", ""),
            enabled_pairs=[p.strip().upper() for p in raw_pairs.split(",") if p.strip()],
            auto_pair_updates=getattr(self, f"{name}_auto_pair_updates", False),
        )

        stored = _read_stored_pairs().get(name)
        if stored is not None:
            cfg.enabled_pairs = stored
        return cfg


settings = Settings()


# ============================================
# Pair Write-Back
# ============================================

def _read_stored_pairs() -> Dict[str, List[str]]:
    if not settings.venue_config_path:
        return {}
    path = Path(settings.venue_config_path)
    if not path.exists():
        return {}
    with path.open() as fh:
        data = json.load(fh)
    return {name: entry.get("enabled_pairs", []) for name, entry in data.items()}


def save_venue_config(cfg: VenueConfig, path: Optional[str] = None) -> None:
    """
    Persist a venue's enabled pairs to the write-back file.

    Other venues' entries in the file are preserved. Does nothing when no
    write-back file is configured.

    The file is replaced in one step, so a failed write leaves the previous
    contents intact.
    """
    target = path or settings.venue_config_path
    if not target:
        return

    file_path = Path(target)
    data = {}
    if file_path.exists():
        with file_path.open() as fh:
            data = json.load(fh)

    data[cfg.name] = {"enabled_pairs": cfg.enabled_pairs}
    tmp_path = file_path.with_name(file_path.name + ".tmp")
    try:
        with tmp_path.open("w") as fh:
            json.dump(data, fh, indent=2, sort_keys=True)
        tmp_path.replace(file_path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


# ============================================
# Configuration Validation
# ============================================

VENUES = ("huobihadax", "itbit")


def validate_configuration() -> None:
    """
    Validate critical configuration settings on application startup.

    Raises:
        ValueError: If configuration is invalid
    """
    from core.logging import logger

    if not (1 <= settings.app_port <= 65535):
        raise ValueError(f"Invalid port number: {settings.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    if settings.request_timeout <= 0:
        raise ValueError(f"REQUEST_TIMEOUT must be positive, got {settings.request_timeout}")

    for venue in VENUES:
        for pair in settings.venue_config(venue).enabled_pairs:
            try:
                CurrencyPair.from_string(pair)
            except ValueError:
                raise ValueError(
                    f"Invalid pair '{pair}' for {venue}. "
                    f"Pairs must be written BASE-QUOTE"
                )

    logger.info("Configuration validated successfully")
    for venue in VENUES:
        cfg = settings.venue_config(venue)
        state = "enabled" if cfg.enabled else "disabled"
        logger.info(f"{venue}: {state}, {len(cfg.enabled_pairs)} pair(s), authenticated={cfg.authenticated}")
    logger.info(f"Request timeout: {settings.request_timeout}s")
    logger.info(f"Log level: {settings.log_level.upper()}")
