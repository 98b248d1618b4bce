"""
FastAPI 应用工厂和配置
"""

import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from pricepulse import __version__
from pricepulse.core.client import PricePulseClient
from pricepulse.core.exceptions import DataValidationError, PricePulseError, ProviderError
from pricepulse.core.logging import log_context

from .models import ErrorResponse
from .routes import health_router, metrics_router, price_router
from .utils import REQUEST_ID_HEADER, get_request_id

_EXCLUDED_LOG_PATHS = ("/api/v1/health", "/metrics", "/docs", "/openapi.json")


def create_app(client: PricePulseClient | None = None) -> FastAPI:
    """创建 FastAPI 应用实例

    Args:
        client: 预先构建的客户端; 为空时在启动时按配置创建, 并在关闭时释放
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """应用生命周期管理"""
        active = client or PricePulseClient()
        app.state.pricepulse_client = active

        # keep the primary store polling for the configured symbols while serving
        consumer = active.consumer()
        consumer.attach()
        if consumer.symbols:
            timeout = active.config.store.startup_timeout
            try:
                await active.store.wait_for_cycle(timeout=timeout)
            except TimeoutError:
                logger.bind(source="web").warning(f"No price cycle completed within {timeout}s of startup")

        yield

        consumer.detach()
        if client is None:
            await active.aclose()

    app = FastAPI(
        title="pricepulse",
        description="Aggregated cryptocurrency prices and candle analytics",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    _setup_middleware(app)
    _setup_routes(app)
    _setup_exception_handlers(app)
    return app


def _setup_middleware(app: FastAPI) -> None:
    """配置中间件"""

    @app.middleware("http")
    async def request_context(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        path = request.url.path
        with log_context(trace_id=request.headers.get(REQUEST_ID_HEADER), source="web") as trace_id:
            request.state.request_id = trace_id
            if path.startswith(_EXCLUDED_LOG_PATHS):
                response = await call_next(request)
            else:
                start_time = time.perf_counter()
                try:
                    response = await call_next(request)
                except Exception as e:
                    logger.bind(method=request.method, path=path, error_type=type(e).__name__).error("Request failed")
                    raise
                duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
                logger.bind(
                    method=request.method,
                    path=path,
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                ).info("Request completed")
            response.headers[REQUEST_ID_HEADER] = trace_id
            return response

    app.add_middleware(GZipMiddleware, minimum_size=1000)


def _setup_routes(app: FastAPI) -> None:
    """注册路由"""
    app.include_router(health_router, prefix="/api/v1", tags=["health"])
    app.include_router(price_router, prefix="/api/v1", tags=["prices"])
    app.include_router(metrics_router)


def _error_response(request: Request, status_code: int, error: str, message: str, details: dict | None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details, request_id=get_request_id(request))
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def _setup_exception_handlers(app: FastAPI) -> None:
    """配置异常处理器"""

    @app.exception_handler(DataValidationError)
    async def validation_exception_handler(request: Request, exc: DataValidationError) -> JSONResponse:
        return _error_response(request, 422, exc.__class__.__name__, exc.message, exc.to_payload())

    @app.exception_handler(ProviderError)
    async def provider_exception_handler(request: Request, exc: ProviderError) -> JSONResponse:
        logger.bind(error_code=exc.error_code).warning(f"Provider error while serving {request.url.path}: {exc.message}")
        return _error_response(request, 502, exc.__class__.__name__, exc.message, exc.to_payload())

    @app.exception_handler(PricePulseError)
    async def pricepulse_exception_handler(request: Request, exc: PricePulseError) -> JSONResponse:
        return _error_response(request, 400, exc.__class__.__name__, exc.message, exc.to_payload())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _error_response(request, exc.status_code, "HTTPException", str(exc.detail), {"status_code": exc.status_code})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error(f"Unhandled error while serving {request.url.path}")
        return _error_response(request, 500, "InternalServerError", "服务器内部错误", {"type": type(exc).__name__})
