"""
价格与K线 API 路由
"""

import contextlib
import math
from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request

from pricepulse.core.models import normalize_symbols

from ..models import APIResponse
from ..utils import get_client, get_request_id

router = APIRouter()

# upper bound for waiting on a fetch triggered by newly requested symbols
NEW_SYMBOL_WAIT_SECONDS = 2.0


def _json_safe(row: Mapping[str, Any]) -> dict[str, Any]:
    # JSON has no NaN or infinity
    return {key: None if isinstance(value, float) and not math.isfinite(value) else value for key, value in row.items()}


@router.get("/prices", response_model=APIResponse)
async def list_prices(
    request: Request,
    symbols: str | None = Query(None, description="逗号分隔的符号列表, 为空时返回全部已跟踪符号"),
) -> APIResponse:
    """
    获取当前价格快照

    Unknown symbols are added to the tracked set; the response waits briefly
    for the resulting fetch and lists symbols still without a price.
    """
    store = get_client(request).store
    requested = sorted(normalize_symbols(symbols.split(","))) if symbols else []
    if requested and store.request_symbols(requested) and store.is_running:
        with contextlib.suppress(TimeoutError):
            await store.wait_for_cycle(timeout=NEW_SYMBOL_WAIT_SECONDS)

    snapshot = store.get_snapshot()
    payload = snapshot.to_dict()
    if requested:
        payload["prices"] = {symbol: payload["prices"][symbol] for symbol in requested if symbol in payload["prices"]}
        payload["missing"] = [symbol for symbol in requested if symbol not in payload["prices"]]
    return APIResponse(
        success=True,
        data=payload,
        message=f"{len(payload['prices'])} prices ({snapshot.connection_state.value})",
        request_id=get_request_id(request),
    )


@router.get("/prices/{symbol}", response_model=APIResponse)
async def get_price(request: Request, symbol: str) -> APIResponse:
    """获取单个符号的最新价格"""
    snapshot = get_client(request).store.get_snapshot()
    record = snapshot.get(symbol)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No price for {symbol.upper()}")
    return APIResponse(
        success=True,
        data={
            **record.model_dump(mode="json"),
            "connection_state": snapshot.connection_state.value,
            "error_message": snapshot.error_message,
        },
        request_id=get_request_id(request),
    )


@router.post("/prices/reconnect", response_model=APIResponse)
async def reconnect(request: Request) -> APIResponse:
    """强制重新连接价格源"""
    client = get_client(request)
    for store in client.stores:
        store.reconnect()
    return APIResponse(
        success=True,
        data={store.source: store.get_snapshot().connection_state.value for store in client.stores},
        message="Reconnect requested",
        request_id=get_request_id(request),
    )


@router.get("/candles/{symbol}", response_model=APIResponse)
async def get_candles(
    request: Request,
    symbol: str,
    interval: str | None = Query(None, description="K线间隔 (1m ... 1M)"),
    limit: int | None = Query(None, description="返回条数"),
) -> APIResponse:
    """
    获取处理后的K线

    Validation failures surface as 422, provider failures as 502.
    """
    candles = await get_client(request).get_candles(symbol, interval, limit)
    return APIResponse(
        success=True,
        data=[_json_safe(candle.as_mapping()) for candle in candles],
        message=f"{len(candles)} candles for {symbol.upper()}",
        request_id=get_request_id(request),
    )
