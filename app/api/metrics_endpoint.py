"""Prometheus metrics endpoint.

Returns plain text in Prometheus exposition format, e.g.:

  certificates_issued_total{path="approval"} 12.0
  certificate_verifications_total{result="active"} 40.0
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose all Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
