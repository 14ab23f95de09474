"""Tests for configuration loading and validation."""

import pytest

from teetime.config import (
    AppConfig,
    CheckoutConfig,
    HoldConfig,
    PricingConfig,
    _safe_date_list,
    _safe_float,
    _safe_int,
    _validate_config,
)


def config_with(pricing=None, holds=None, checkout=None) -> AppConfig:
    return AppConfig(
        pricing=pricing or PricingConfig(),
        holds=holds or HoldConfig(),
        checkout=checkout or CheckoutConfig(),
    )


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_negative_fee_rejected(self):
        with pytest.raises(ValueError, match="CART_FEE"):
            _validate_config(config_with(pricing=PricingConfig(cart_fee=-1)))

    def test_holiday_rate_below_weekday_rejected(self):
        pricing = PricingConfig(green_fee_18_weekday=3000, green_fee_18_holiday=2000)
        with pytest.raises(ValueError, match="GREEN_FEE_18_HOLIDAY"):
            _validate_config(config_with(pricing=pricing))

    def test_nine_hole_holiday_rate_below_weekday_rejected(self):
        pricing = PricingConfig(green_fee_9_weekday=1500, green_fee_9_holiday=1000)
        with pytest.raises(ValueError, match="GREEN_FEE_9_HOLIDAY"):
            _validate_config(config_with(pricing=pricing))

    def test_zero_ttl_rejected(self):
        holds = HoldConfig.__new__(HoldConfig)
        object.__setattr__(holds, "ttl_seconds", 0.0)
        object.__setattr__(holds, "refresh_interval_sec", 15.0)
        with pytest.raises(ValueError, match="HOLD_TTL_SECONDS"):
            _validate_config(config_with(holds=holds))

    def test_zero_refresh_interval_rejected(self):
        with pytest.raises(ValueError, match="RESOURCE_REFRESH_SECONDS"):
            _validate_config(config_with(holds=HoldConfig(ttl_seconds=600, refresh_interval_sec=0)))

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValueError, match="CHECKOUT_MAX_ATTEMPTS"):
            _validate_config(config_with(checkout=CheckoutConfig(max_attempts=0)))

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError, match="CHECKOUT_RETRY_DELAY_SECONDS"):
            _validate_config(config_with(checkout=CheckoutConfig(retry_delay_sec=-1)))


class TestEnvParsing:
    def test_safe_int_reads_env(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "42")
        assert _safe_int("TEST_INT", "0") == 42

    def test_safe_int_bad_value(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "many")
        with pytest.raises(ValueError, match="TEST_INT"):
            _safe_int("TEST_INT", "0")

    def test_safe_float_default(self, monkeypatch):
        monkeypatch.delenv("TEST_FLOAT", raising=False)
        assert _safe_float("TEST_FLOAT", "2.5") == 2.5

    def test_date_list(self, monkeypatch):
        monkeypatch.setenv("TEST_DATES", "2030-04-13, 2030-01-01,,2030-04-13")
        dates = _safe_date_list("TEST_DATES")
        assert [d.isoformat() for d in dates] == ["2030-01-01", "2030-04-13"]

    def test_date_list_bad_value(self, monkeypatch):
        monkeypatch.setenv("TEST_DATES", "2030-13-01")
        with pytest.raises(ValueError, match="TEST_DATES"):
            _safe_date_list("TEST_DATES")

    def test_date_list_empty(self, monkeypatch):
        monkeypatch.delenv("TEST_DATES", raising=False)
        assert _safe_date_list("TEST_DATES") == ()
