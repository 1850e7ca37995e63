from typing import AsyncGenerator

import httpx


async def get_kpi_api_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Dependency that provides an HTTP client for the remote KPI API.

    No timeout is set; a request lasts until the upstream answers or the
    caller cancels it.

    Usage:
        @router.post("/kpis/query")
        async def query(client: httpx.AsyncClient = Depends(get_kpi_api_client)):
            ...
    """
    async with httpx.AsyncClient(timeout=None, follow_redirects=True) as client:
        yield client
