"""
Asynchronous phone delivery.

The contact provider posts revealed phone numbers to a webhook some time
after a bulk match. Each delivery resolves the pending leads of that person.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from hirescout.core.clients.apollo import pick_phone
from hirescout.core.errors import ValidationError
from hirescout.core.logging import get_logger
from hirescout.persistence.db import SessionFactory, get_async_session
from hirescout.persistence.models import utcnow
from hirescout.persistence.repo import EmployeeRepository, EnrichmentCacheRepository, LeadRepository

logger = get_logger("enrichment.phones")


def extract_people(payload: Any) -> list[dict[str, Any]]:
    """Accept ``{matches}``, ``{people}``, a bare list or a single person."""
    if isinstance(payload, list):
        people = payload
    elif isinstance(payload, dict):
        if isinstance(payload.get("matches"), list):
            people = payload["matches"]
        elif isinstance(payload.get("people"), list):
            people = payload["people"]
        elif "id" in payload:
            people = [payload]
        else:
            raise ValidationError("Unrecognized phone webhook payload")
    else:
        raise ValidationError("Phone webhook payload must be a JSON object or list")
    return [p for p in people if isinstance(p, dict)]


class PhoneWebhookHandler:
    """Applies delivered phone numbers to leads, employees and the cache."""

    def __init__(self, session_factory: SessionFactory = get_async_session):
        self.session_factory = session_factory

    async def apply(self, payload: Any) -> dict[str, int]:
        people = extract_people(payload)
        updated = errors = 0

        for person in people:
            apollo_id = person.get("id")
            if not apollo_id:
                continue
            apollo_id = str(apollo_id)
            phone = pick_phone(person.get("phone_numbers"))

            try:
                async with self.session_factory() as session:
                    updated += await self._apply_one(session, apollo_id, phone)
            except SQLAlchemyError as e:
                errors += 1
                logger.error(f"Failed to store phone for {apollo_id}: {e}")

        logger.info(f"Phone webhook: {updated} leads updated, {errors} errors from {len(people)} people")
        return {"updated": updated, "errors": errors}

    async def _apply_one(self, session: Any, apollo_id: str, phone: str | None) -> int:
        stamp = {
            "phonePending": False,
            "phoneFound": phone is not None,
            "phoneUpdatedAt": utcnow().isoformat(),
        }

        repo = LeadRepository(session)
        leads = await repo.list_for_apollo_id(apollo_id)
        for lead in leads:
            await repo.upgrade(lead, {"phone": phone}, meta=stamp)

        if phone:
            for employee in await EmployeeRepository(session).find_by_apollo_id(apollo_id):
                if not employee.phone:
                    employee.phone = phone
            await EnrichmentCacheRepository(session).update_phone(apollo_id, phone)

        logger.debug(f"{apollo_id}: phone {'found' if phone else 'not found'}, {len(leads)} leads")
        return len(leads)
