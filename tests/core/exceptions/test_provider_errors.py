"""Tests for the pricepulse exception hierarchy."""

import pytest

from pricepulse.core.exceptions import (
    ConfigurationError,
    DataValidationError,
    ErrorCode,
    MalformedResponseError,
    PricePulseError,
    ProviderError,
    ProviderUnavailableError,
    RateLimitError,
    RequestRejectedError,
    UnsupportedOperationError,
)


def test_base_error_payload() -> None:
    error = PricePulseError("boom", details={"symbol": "BTC"})

    assert str(error) == "boom"
    assert error.to_payload() == {
        "code": ErrorCode.GENERAL_ERROR.value,
        "message": "boom",
        "details": {"symbol": "BTC"},
    }


def test_provider_error_records_provider() -> None:
    error = ProviderError("failed", "binance")

    assert error.provider_name == "binance"
    assert error.details["provider"] == "binance"
    assert error.error_code == ErrorCode.PROVIDER_ERROR.value


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (ProviderUnavailableError("down", "binance", status_code=503), ErrorCode.PROVIDER_UNAVAILABLE),
        (RateLimitError("slow", "binance", retry_after=30), ErrorCode.RATE_LIMIT_ERROR),
        (RequestRejectedError("bad symbol", "binance", 400), ErrorCode.REQUEST_REJECTED),
        (MalformedResponseError("garbage", "livecoinwatch"), ErrorCode.MALFORMED_RESPONSE),
        (UnsupportedOperationError("no klines", "livecoinwatch", operation="klines"), ErrorCode.UNSUPPORTED_OPERATION),
    ],
)
def test_provider_error_codes(error: ProviderError, code: ErrorCode) -> None:
    assert isinstance(error, ProviderError)
    assert error.error_code == code.value


def test_rate_limit_is_unavailable_with_429() -> None:
    error = RateLimitError("slow", "binance", retry_after=30)

    assert isinstance(error, ProviderUnavailableError)
    assert error.status_code == 429
    assert error.details == {"provider": "binance", "retry_after": 30, "status_code": 429}


def test_rejected_request_is_not_unavailable() -> None:
    error = RequestRejectedError("bad symbol", "binance", 400)

    assert not isinstance(error, ProviderUnavailableError)
    assert error.details["status_code"] == 400


def test_unsupported_operation_details() -> None:
    error = UnsupportedOperationError("no klines", "livecoinwatch", operation="klines")

    assert error.details["operation"] == "klines"


def test_validation_error_keeps_field_errors() -> None:
    error = DataValidationError("Invalid candle request", {"limit": "must be between 1 and 1000"})

    assert error.validation_errors == {"limit": "must be between 1 and 1000"}
    assert error.to_payload()["details"]["validation_errors"]["limit"].startswith("must")
    assert DataValidationError("empty").validation_errors == {}


def test_configuration_error_setting() -> None:
    error = ConfigurationError("missing key", setting="livecoinwatch.api_key")

    assert error.error_code == ErrorCode.CONFIGURATION_ERROR.value
    assert error.details == {"setting": "livecoinwatch.api_key"}
