"""
The getKPI tool handed to the chat orchestration layer.

The orchestrator registers the tool with TOOL_NAME, tool_description() and
tool_parameters_schema(), then calls get_kpi() with the arguments the model
produced.
"""
import asyncio
from typing import Any, Mapping, Optional

import httpx

from kpiscope.api.v1.metrics import kpi_query_rejections_total
from kpiscope.core.exceptions import QueryValidationError
from kpiscope.core.logging import bound_query_context
from kpiscope.schemas.query import KPIQuery
from kpiscope.services.catalog import catalog
from kpiscope.services.kpi_client import fetch_kpi_data
from kpiscope.services.query_builder import build_query


TOOL_NAME = "getKPI"


def tool_description() -> str:
    """Describe the tool, its technologies and every KPI with its synonyms."""
    lines = [
        "Retrieve KPI metrics from our KPI API.",
        "",
        "Supported technologies:",
    ]
    for technology in catalog.technologies():
        lines.append(f"  - {technology.value}: {', '.join(catalog.kpis_for(technology))}")

    lines.extend(["", "KPI metadata:"])
    for key in sorted(catalog.all_kpi_keys(), key=str.lower):
        meta = catalog.metadata(key)
        if meta is None:
            continue
        lines.append(f"  - {key} -> {meta.display_name} (synonyms: {', '.join(meta.synonyms)})")

    lines.extend([
        "",
        "The tool requires a technology, a start_date/end_date, and at least one KPI "
        "(from the list above).",
        "You must also filter by either element or site substring. Optionally specify a limit.",
    ])
    return "\n".join(lines)


def tool_parameters_schema() -> dict[str, Any]:
    """JSON Schema of the tool arguments."""
    schema = KPIQuery.model_json_schema()
    # Advertise the exact key set and date format to the model
    schema["properties"]["kpi"]["items"] = {
        "type": "string",
        "enum": sorted(catalog.all_kpi_keys()),
    }
    for name in ("start_date", "end_date"):
        schema["properties"][name]["pattern"] = r"^\d{4}-\d{2}-\d{2}$"
    return schema


async def get_kpi(
    params: Mapping[str, Any],
    cancel_event: Optional[asyncio.Event] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> Any:
    """
    Validate tool arguments and fetch the matching KPI rows.

    Returns:
        Raw JSON decoded from the remote API

    Raises:
        QueryValidationError: Arguments broke a catalog or structural rule
        ExecutionError: The remote call failed or was cancelled
    """
    try:
        query = build_query(params)
    except QueryValidationError as e:
        kpi_query_rejections_total.labels(field=e.field).inc()
        raise

    with bound_query_context(query.technology, query.kpi):
        return await fetch_kpi_data(query, cancel_event, client=client)
