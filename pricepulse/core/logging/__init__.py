"""结构化 JSON 日志(loguru), 带 trace id 与来源上下文."""

from pricepulse.core.logging.config import LOG_LEVELS, LogConfig
from pricepulse.core.logging.logger import configure_logging, log_context, logger

__all__ = ["LOG_LEVELS", "LogConfig", "configure_logging", "log_context", "logger"]
