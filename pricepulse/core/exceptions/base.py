"""pricepulse核心异常类."""

from typing import Any

from pricepulse.core.exceptions.codes import ErrorCode


class PricePulseError(Exception):
    """pricepulse基础异常类."""

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.GENERAL_ERROR.value,
        details: dict[str, Any] | None = None,
    ):
        """初始化异常.

        Args:
            message: 错误消息
            error_code: 错误代码
            details: 额外详情
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Return a serializable payload representing the error."""

        return {
            "code": self.error_code,
            "message": self.message,
            "details": dict(self.details),
        }


class ProviderError(PricePulseError):
    """数据提供商相关异常."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        error_code: str = ErrorCode.PROVIDER_ERROR.value,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details.setdefault("provider", provider_name)
        super().__init__(message, error_code, super_details)
        self.provider_name = provider_name


class ProviderUnavailableError(ProviderError):
    """提供商网络不可达或返回非2xx状态."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        status_code: int | None = None,
        error_code: str = ErrorCode.PROVIDER_UNAVAILABLE.value,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if status_code is not None:
            super_details["status_code"] = status_code
        super().__init__(message, provider_name, error_code, super_details)
        self.status_code = status_code


class RateLimitError(ProviderUnavailableError):
    """速率限制异常."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if retry_after is not None:
            super_details["retry_after"] = retry_after
        super().__init__(
            message,
            provider_name,
            status_code=429,
            error_code=ErrorCode.RATE_LIMIT_ERROR.value,
            details=super_details,
        )
        self.retry_after = retry_after


class RequestRejectedError(ProviderError):
    """提供商以4xx状态拒绝了请求(速率限制除外)."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        status_code: int,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details["status_code"] = status_code
        super().__init__(message, provider_name, ErrorCode.REQUEST_REJECTED.value, super_details)
        self.status_code = status_code


class MalformedResponseError(ProviderError):
    """提供商返回的数据无法解析."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, provider_name, ErrorCode.MALFORMED_RESPONSE.value, details)


class UnsupportedOperationError(ProviderError):
    """提供商不支持该操作."""

    def __init__(
        self,
        message: str,
        provider_name: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if operation:
            super_details["operation"] = operation
        super().__init__(message, provider_name, ErrorCode.UNSUPPORTED_OPERATION.value, super_details)


class DataValidationError(PricePulseError):
    """数据验证异常."""

    def __init__(
        self,
        message: str,
        validation_errors: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if validation_errors:
            super_details["validation_errors"] = validation_errors
        super().__init__(message, ErrorCode.VALIDATION_ERROR.value, super_details)
        self.validation_errors = validation_errors or {}


class ConfigurationError(PricePulseError):
    """配置异常."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if setting:
            super_details["setting"] = setting
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR.value, super_details)
