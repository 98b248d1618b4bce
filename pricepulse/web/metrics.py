"""FastAPI utilities for Prometheus metrics exposure."""

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST

from pricepulse.core.monitoring import get_metrics_collector

router = APIRouter()


@router.get("/metrics", include_in_schema=False, summary="Prometheus metrics endpoint")
def metrics_endpoint(request: Request) -> Response:
    """Expose the client's fetch metrics in Prometheus text format."""

    client = getattr(request.app.state, "pricepulse_client", None)
    collector = client.metrics if client is not None else get_metrics_collector()
    return Response(content=collector.render(), media_type=CONTENT_TYPE_LATEST)
