"""Lead company enrichment routes."""

from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query

from hirescout.api.deps import Caller, get_caller, get_services
from hirescout.api.schemas import EnrichCompaniesBody
from hirescout.core.services import Services

router = APIRouter(prefix="/api/leads/companies", tags=["Enrichment"])


@router.post("/enrich")
async def enrich_companies(
    body: Optional[EnrichCompaniesBody] = Body(default=None),
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """
    Enrich companies with employees and leads.

    Without ``companyIds`` every company referenced by an existing lead of
    the organization is enriched.
    """
    request = (body or EnrichCompaniesBody()).to_request()
    summary = await services.pipeline.enrich(caller.org_id, caller.user_id, request)
    return {"success": True, **summary.to_dict()}


@router.get("/enrich")
async def preview_enrichment(
    company_ids: Optional[List[str]] = Query(default=None, alias="companyId"),
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Read-only cost estimate for an enrichment of the same companies."""
    return await services.pipeline.preview(caller.org_id, company_ids or None)
