"""
Search run routes.

Trigger a run, poll run status, cancel queued runs and reap stale ones.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends

from hirescout.api.deps import Caller, get_caller, get_services
from hirescout.api.schemas import RunSearchBody
from hirescout.core.services import Services

router = APIRouter(prefix="/api/searches", tags=["Searches"])


@router.post("/{search_id}/run")
async def run_search(
    search_id: str,
    body: Optional[RunSearchBody] = Body(default=None),
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """
    Run every scraper config of a search, or only ``scraperIndex``.

    Individual scraper failures are reported in ``scraperResults``; only
    precondition failures reject the request.
    """
    result = await services.scheduler.run_search(
        caller.org_id,
        search_id,
        scraper_index=body.scraper_index if body else None,
        user_id=caller.user_id,
    )
    return {"success": True, **result.to_dict()}


@router.get("/{search_id}/runs")
async def list_runs(
    search_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return await services.runs.list_runs(caller.org_id, search_id)


@router.post("/{search_id}/runs/cleanup")
async def cleanup_runs(
    search_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Fail queued/running runs that have outlived the staleness threshold."""
    return {"success": True, **await services.runs.cleanup(caller.org_id, search_id)}


@router.get("/{search_id}/runs/{run_id}")
async def get_run(
    search_id: str,
    run_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    return {"run": await services.runs.get_run(caller.org_id, search_id, run_id)}


@router.delete("/{search_id}/runs/{run_id}")
async def cancel_run(
    search_id: str,
    run_id: str,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    run = await services.runs.cancel_run(caller.org_id, search_id, run_id)
    return {"success": True, "message": "Scraper run cancelled", "run": run}
