"""日志配置 - configure_logging 的参数模型"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# loguru 内置级别
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class LogConfig(BaseModel):
    """JSON 日志 sink 配置.

    ``level`` is case-insensitive and must name a built-in loguru level.
    ``extra`` is bound to every record, e.g. ``{"service": "pricepulse-web"}``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    level: str = "INFO"
    console_output: bool = True
    console_stream: Any = None
    file_output: bool = False
    file_path: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: Any) -> str:
        level = str(value).strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}, expected one of {', '.join(LOG_LEVELS)}")
        return level

    @model_validator(mode="after")
    def check_file_sink(self) -> "LogConfig":
        if self.file_output and not self.file_path:
            raise ValueError("file_output requires file_path")
        return self


__all__ = ["LOG_LEVELS", "LogConfig"]
