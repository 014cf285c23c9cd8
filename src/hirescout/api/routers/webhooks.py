"""Inbound provider webhooks."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from hirescout.api.deps import get_services
from hirescout.core.services import Services

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


@router.post("/apollo/phones")
async def receive_phones(
    payload: Any = Body(...),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Apply phone numbers delivered after a bulk match with phone reveal."""
    result = await services.phones.apply(payload)
    return {"success": True, **result}


@router.get("/apollo/phones")
async def phones_endpoint_status() -> dict[str, str]:
    return {"status": "ok", "message": "Apollo phone webhook endpoint"}
