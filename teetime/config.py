"""
Centralized configuration with environment variable overrides.

Green-fee rates, equipment fees, hold lifetimes, and checkout retry
bounds are configurable here. Nothing is hardcoded in pricing, hold,
or reconciliation logic.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import date

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_date_list(env_var: str, default: str = "") -> tuple[date, ...]:
    """Parse a comma-separated list of ISO dates (YYYY-MM-DD)."""
    raw = os.getenv(env_var, default)
    dates = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            dates.append(date.fromisoformat(item))
        except ValueError:
            raise ValueError(
                f"Invalid date in {env_var}: {item!r}"
            ) from None
    return tuple(sorted(set(dates)))


@dataclass(frozen=True)
class PricingConfig:
    """Per-player green fees and per-unit equipment fees (THB)."""

    green_fee_18_weekday: int = _safe_int("GREEN_FEE_18_WEEKDAY", "2200")
    green_fee_18_holiday: int = _safe_int("GREEN_FEE_18_HOLIDAY", "4000")
    green_fee_9_weekday: int = _safe_int("GREEN_FEE_9_WEEKDAY", "1500")
    green_fee_9_holiday: int = _safe_int("GREEN_FEE_9_HOLIDAY", "2500")
    caddy_fee: int = _safe_int("CADDY_FEE", "400")
    cart_fee: int = _safe_int("CART_FEE", "600")
    bag_fee: int = _safe_int("BAG_FEE", "300")
    holiday_dates: tuple[date, ...] = _safe_date_list("HOLIDAY_DATES")


@dataclass(frozen=True)
class HoldConfig:
    """Soft-hold lifetime and resource list refresh cadence."""

    ttl_seconds: float = _safe_float("HOLD_TTL_SECONDS", "600")
    refresh_interval_sec: float = _safe_float("RESOURCE_REFRESH_SECONDS", "15")


@dataclass(frozen=True)
class CheckoutConfig:
    """Payment hand-off and post-redirect reconciliation bounds."""

    max_attempts: int = _safe_int("CHECKOUT_MAX_ATTEMPTS", "6")
    retry_delay_sec: float = _safe_float("CHECKOUT_RETRY_DELAY_SECONDS", "2.0")
    payment_base_url: str = os.getenv("PAYMENT_BASE_URL", "https://checkout.example.com/pay")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    pricing: PricingConfig = field(default_factory=PricingConfig)
    holds: HoldConfig = field(default_factory=HoldConfig)
    checkout: CheckoutConfig = field(default_factory=CheckoutConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    club_name: str = os.getenv("CLUB_NAME", "Eden Golf Club")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    pricing = config.pricing
    for fee_name, fee_value in [
        ("GREEN_FEE_18_WEEKDAY", pricing.green_fee_18_weekday),
        ("GREEN_FEE_18_HOLIDAY", pricing.green_fee_18_holiday),
        ("GREEN_FEE_9_WEEKDAY", pricing.green_fee_9_weekday),
        ("GREEN_FEE_9_HOLIDAY", pricing.green_fee_9_holiday),
        ("CADDY_FEE", pricing.caddy_fee),
        ("CART_FEE", pricing.cart_fee),
        ("BAG_FEE", pricing.bag_fee),
    ]:
        if fee_value < 0:
            raise ValueError(f"{fee_name} must be >= 0, got {fee_value}")

    if pricing.green_fee_18_holiday < pricing.green_fee_18_weekday:
        raise ValueError(
            "GREEN_FEE_18_HOLIDAY must be >= GREEN_FEE_18_WEEKDAY, "
            f"got {pricing.green_fee_18_holiday} < {pricing.green_fee_18_weekday}"
        )
    if pricing.green_fee_9_holiday < pricing.green_fee_9_weekday:
        raise ValueError(
            "GREEN_FEE_9_HOLIDAY must be >= GREEN_FEE_9_WEEKDAY, "
            f"got {pricing.green_fee_9_holiday} < {pricing.green_fee_9_weekday}"
        )

    if config.holds.ttl_seconds <= 0:
        raise ValueError(f"HOLD_TTL_SECONDS must be > 0, got {config.holds.ttl_seconds}")
    if config.holds.refresh_interval_sec <= 0:
        raise ValueError(
            f"RESOURCE_REFRESH_SECONDS must be > 0, got {config.holds.refresh_interval_sec}"
        )

    if config.checkout.max_attempts < 1:
        raise ValueError(
            f"CHECKOUT_MAX_ATTEMPTS must be >= 1, got {config.checkout.max_attempts}"
        )
    if config.checkout.retry_delay_sec < 0:
        raise ValueError(
            "CHECKOUT_RETRY_DELAY_SECONDS must be >= 0, "
            f"got {config.checkout.retry_delay_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.club_name)
    return config


# Singleton instance
settings = load_config()
