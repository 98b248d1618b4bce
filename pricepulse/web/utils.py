"""Web相关的工具函数"""

from fastapi import Request

from pricepulse.core.client import PricePulseClient

REQUEST_ID_HEADER = "X-Request-ID"


def get_request_id(request: Request) -> str | None:
    """从请求状态或请求头中获取请求ID"""
    return getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER)


def get_client(request: Request) -> PricePulseClient:
    """返回应用生命周期内共享的客户端"""
    return request.app.state.pricepulse_client
