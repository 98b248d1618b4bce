"""重试机制实现，包括指数退避重试."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from loguru import logger

from pricepulse.core.exceptions import MalformedResponseError, ProviderUnavailableError, RateLimitError

T = TypeVar("T")


@dataclass
class RetryConfig:
    """重试配置.

    ``max_attempts`` 包含首次调用, 即重试次数 + 1.
    """

    max_attempts: int = 3  # 最大尝试次数
    base_delay: float = 0.5  # 基础延迟时间(秒)
    max_delay: float = 10.0  # 最大延迟时间(秒)
    jitter: bool = True  # 是否添加随机抖动
    exponential_base: float = 2.0  # 指数基数
    retry_on_exceptions: list[type] = field(default_factory=lambda: [ProviderUnavailableError])
    skip_on_exceptions: list[type] = field(default_factory=lambda: [RateLimitError, MalformedResponseError])


class ExponentialBackoffRetry:
    """指数退避重试实现.

    Stateless between calls, so one instance may be shared by concurrent requests.
    """

    def __init__(self, config: RetryConfig):
        self.config = config

    async def execute(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """执行函数，应用重试逻辑.

        Args:
            func: 要执行的函数
            *args: 函数参数
            **kwargs: 函数关键字参数

        Returns:
            函数返回结果

        Raises:
            Exception: 不可重试的异常, 或尝试次数用尽时的最后一个异常
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                # 检查是否应该跳过重试
                if any(isinstance(e, exc_type) for exc_type in self.config.skip_on_exceptions):
                    raise

                should_retry = any(isinstance(e, exc_type) for exc_type in self.config.retry_on_exceptions)
                if not should_retry or attempt >= self.config.max_attempts:
                    raise

                delay = self._calculate_delay(attempt - 1)
                logger.debug(f"Retrying after {type(e).__name__} in {delay:.2f}s (attempt {attempt})")
                await asyncio.sleep(delay)

    def _calculate_delay(self, attempt_number: int) -> float:
        """计算延迟时间.

        Args:
            attempt_number: 重试次数(从0开始)

        Returns:
            延迟时间(秒)
        """
        if attempt_number < 0:
            return 0.0

        delay = self.config.base_delay * (self.config.exponential_base**attempt_number)

        if self.config.jitter:
            jitter_range = min(delay * 0.1, 1.0)  # 最多10%的抖动
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0.0, min(delay, self.config.max_delay))
