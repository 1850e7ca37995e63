"""
Prometheus metrics endpoint.
Exposes application metrics for Prometheus scraping.
"""
from fastapi import APIRouter, Response
from prometheus_client import (
    Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
)

router = APIRouter(tags=["Metrics"])

# Counters
kpi_queries_total = Counter(
    "kpiscope_kpi_queries_total",
    "Total KPI queries sent to the remote KPI API",
    ["technology", "outcome"]
)

kpi_query_rejections_total = Counter(
    "kpiscope_kpi_query_rejections_total",
    "Total candidate KPI queries rejected by validation",
    ["field"]
)

kpi_summaries_total = Counter(
    "kpiscope_kpi_summaries_total",
    "Total KPI series summarized"
)

# Histograms
kpi_query_latency_seconds = Histogram(
    "kpiscope_kpi_query_latency_seconds",
    "Remote KPI API round-trip latency in seconds"
)


@router.get("/metrics")
async def metrics():
    """
    Prometheus metrics endpoint.
    Returns metrics in Prometheus text format.
    No authentication required - designed for Prometheus scraper.
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
