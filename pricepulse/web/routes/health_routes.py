"""
健康检查路由
"""

from fastapi import APIRouter, Request
from loguru import logger

from ..models import APIResponse
from ..utils import get_client, get_request_id

router = APIRouter()


@router.get("/health", response_model=APIResponse)
async def health_check(request: Request) -> APIResponse:
    """
    基础健康检查

    Folds every price store's connection state into one status:
    live -> healthy, connecting -> degraded, degraded -> unhealthy.
    """
    health = await get_client(request).health()
    logger.bind(source="web").debug(f"Health check completed: {health.status}")
    return APIResponse(
        success=health.status != "unhealthy",
        data=health.to_dict(),
        message="系统健康检查完成",
        request_id=get_request_id(request),
    )


@router.get("/health/live", response_model=APIResponse)
async def liveness_check(request: Request) -> APIResponse:
    """存活检查"""
    return APIResponse(success=True, data={"alive": True}, message="应用存活", request_id=get_request_id(request))
