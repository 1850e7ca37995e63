from typing import Any

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status

from kpiscope.api.v1.metrics import kpi_summaries_total
from kpiscope.core.dependencies import get_kpi_api_client
from kpiscope.core.logging import get_logger, query_log_context
from kpiscope.schemas.kpi import (
    KPIInfo,
    KPISummaryRequest,
    KPISummaryResponse,
    TechnologyKPIsResponse,
)
from kpiscope.services import kpi_tool, stats_service
from kpiscope.services.catalog import Technology, catalog


router = APIRouter(prefix="/kpis", tags=["KPIs"])
logger = get_logger(__name__)


def _kpi_info(key: str) -> KPIInfo:
    meta = catalog.metadata(key)
    if meta is None:
        return KPIInfo(key=key)
    return KPIInfo(key=key, display_name=meta.display_name, synonyms=list(meta.synonyms))


@router.get("/technologies", response_model=dict)
async def list_technologies():
    """
    List technologies and the KPI keys each one exposes.
    """
    return {
        "data": [
            {"technology": tech.value, "kpis": list(catalog.kpis_for(tech))}
            for tech in catalog.technologies()
        ]
    }


@router.get("/technologies/{technology}", response_model=dict)
async def get_technology_kpis(technology: str):
    """
    Get KPIs with display metadata for one technology.

    Returns 404 if the technology is unknown.
    """
    try:
        tech = Technology(technology)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Technology not found"
        )

    response = TechnologyKPIsResponse(
        technology=tech.value,
        kpis=[_kpi_info(key) for key in catalog.kpis_for(tech)],
    )
    return {"data": response.model_dump()}


@router.get("/search", response_model=dict)
async def search_kpis(q: str = Query(..., min_length=1, description="Key, name or synonym fragment")):
    """
    Search the catalog by key, display name or synonym.
    """
    return {"data": [_kpi_info(key).model_dump() for key in catalog.search(q)]}


@router.post("/query", response_model=dict)
async def query_kpis(
    request: Request,
    params: dict[str, Any] = Body(...),
    client: httpx.AsyncClient = Depends(get_kpi_api_client)
):
    """
    Validate a KPI query and forward it to the remote KPI API.

    Validation errors are returned as 422, upstream failures as 502
    (see the exception handlers in kpiscope.main).
    """
    request.state.query_context = query_log_context(params.get("technology"), params.get("kpi"))
    data = await kpi_tool.get_kpi(params, client=client)
    return {"data": data}


@router.post("/summary", response_model=dict)
async def summarize_kpi(request: KPISummaryRequest):
    """
    Summarize raw KPI records for one KPI key.

    Returns the stats summary, display cards and the time-sorted series.
    """
    series, summary = stats_service.summarize(request.records, request.kpi)
    kpi_summaries_total.inc()

    logger.info(
        "kpi.summarized",
        kpi=request.kpi,
        count=summary.count,
    )

    response = KPISummaryResponse(
        kpi=request.kpi,
        display_name=catalog.display_label(request.kpi),
        summary=summary,
        cards=stats_service.stat_cards(summary),
        series=[dict(r) for r in series],
    )
    return {"data": response.model_dump()}
