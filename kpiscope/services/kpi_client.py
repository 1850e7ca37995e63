"""
Client for the remote KPI data API.

One GET per query: no caching, no retries, no timeout of our own. The
caller may pass an asyncio.Event as a cancellation token; setting it
aborts the in-flight request.
"""
import asyncio
import time
from typing import Any, Optional

import httpx

from kpiscope.api.v1.metrics import kpi_queries_total, kpi_query_latency_seconds
from kpiscope.core.config import settings
from kpiscope.core.exceptions import ExecutionError, QueryCancelledError
from kpiscope.core.logging import get_logger
from kpiscope.schemas.query import KPIQuery


logger = get_logger(__name__)


def build_query_params(query: KPIQuery) -> list[tuple[str, str]]:
    """
    Serialize a query to ordered URL parameters.

    `kpi` is repeated once per key in the order given; element, site and
    limit are only sent when set.
    """
    params: list[tuple[str, str]] = [
        ("technology", query.technology.value),
        ("start_date", query.start_date),
        ("end_date", query.end_date),
    ]
    if query.element:
        params.append(("element", query.element))
    if query.site:
        params.append(("site", query.site))
    params.extend(("kpi", key) for key in query.kpi)
    if query.limit:
        params.append(("limit", str(query.limit)))
    return params


async def _send(
    client: httpx.AsyncClient,
    url: str,
    params: list[tuple[str, str]],
    cancel_event: Optional[asyncio.Event],
) -> httpx.Response:
    request = client.get(url, params=params, headers={"Accept": "application/json"})

    if cancel_event is None:
        return await request

    request_task = asyncio.ensure_future(request)
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancel_task.cancel()
        if not request_task.done():
            request_task.cancel()
            await asyncio.gather(request_task, return_exceptions=True)

    if cancel_event.is_set():
        if request_task.done() and not request_task.cancelled():
            # Mark a failure that raced the token as retrieved
            request_task.exception()
        raise QueryCancelledError()

    return request_task.result()


async def fetch_kpi_data(
    query: KPIQuery,
    cancel_event: Optional[asyncio.Event] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    url: Optional[str] = None,
) -> Any:
    """
    Execute a validated query against the remote KPI API.

    Args:
        query: Validated KPIQuery
        cancel_event: Caller-owned cancellation token
        client: Shared AsyncClient; a short-lived one is created if omitted
        url: Override of the configured KPI endpoint

    Returns:
        Decoded JSON body of the response

    Raises:
        QueryCancelledError: If cancel_event is set before a response arrives
        ExecutionError: On transport failure, non-2xx status or invalid JSON
    """
    technology = query.technology.value

    if cancel_event is not None and cancel_event.is_set():
        logger.info("kpi_client.cancelled", technology=technology, stage="before_request")
        kpi_queries_total.labels(technology=technology, outcome="cancelled").inc()
        raise QueryCancelledError()

    target = url or settings.kpi_api_url
    params = build_query_params(query)

    logger.info(
        "kpi_client.request",
        url=target,
        technology=technology,
        kpi=list(query.kpi),
        element=query.element,
        site=query.site,
        limit=query.limit,
    )

    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=None, follow_redirects=True)

    start_time = time.perf_counter()
    try:
        response = await _send(client, target, params, cancel_event)
    except QueryCancelledError:
        logger.info("kpi_client.cancelled", technology=technology, stage="in_flight")
        kpi_queries_total.labels(technology=technology, outcome="cancelled").inc()
        raise
    except httpx.HTTPError as e:
        logger.error("kpi_client.transport_error", technology=technology, error=str(e))
        kpi_queries_total.labels(technology=technology, outcome="transport_error").inc()
        raise ExecutionError(f"Failed to reach KPI API: {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    kpi_query_latency_seconds.observe(time.perf_counter() - start_time)

    if not response.is_success:
        body = response.text
        logger.warning(
            "kpi_client.upstream_error",
            technology=technology,
            status_code=response.status_code,
            body=body,
        )
        kpi_queries_total.labels(technology=technology, outcome="upstream_error").inc()
        raise ExecutionError(
            f"getKPI failed ({response.status_code}): {body}",
            status=response.status_code,
            body=body,
        )

    try:
        payload = response.json()
    except ValueError as e:
        logger.error("kpi_client.invalid_json", technology=technology, error=str(e))
        kpi_queries_total.labels(technology=technology, outcome="invalid_json").inc()
        raise ExecutionError("KPI API returned invalid JSON payload") from e

    logger.info(
        "kpi_client.success",
        technology=technology,
        status_code=response.status_code,
        rows=len(payload) if isinstance(payload, list) else None,
    )
    kpi_queries_total.labels(technology=technology, outcome="success").inc()

    return payload
