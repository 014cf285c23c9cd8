# tests/enrichment/test_phones.py
"""Tests for the phone webhook: payload shapes, number selection, lead updates"""

import pytest
from sqlalchemy import select

from conftest import make_person
from hirescout.core.clients.apollo import pick_phone
from hirescout.core.enrichment.phones import PhoneWebhookHandler, extract_people
from hirescout.core.errors import ValidationError
from hirescout.persistence.db import get_async_session
from hirescout.persistence.models import Employee, GlobalEmployee, Lead, utcnow
from hirescout.persistence.repo import (
    CompanyRepository,
    EmployeeRepository,
    EnrichmentCacheRepository,
    LeadRepository,
)


async def _pending_lead(org, apollo_id="p1", phone=None):
    async with get_async_session() as session:
        company = await CompanyRepository(session).create(org.id, None, "Acme", domain="acme.io")
        employee, _ = await EmployeeRepository(session).upsert_person(
            org.id, company.id, make_person(apollo_id, phone=phone)
        )
        lead_id = await LeadRepository(session).insert_if_absent({
            "org_id": org.id,
            "company_id": company.id,
            "employee_id": employee.id,
            "status": "new",
            "phone": phone,
            "meta": {"apolloId": apollo_id, "phonePending": True},
        })
        cache = EnrichmentCacheRepository(session)
        cached = await cache.upsert_company("acme.io", fetched_at=utcnow())
        await cache.upsert_employees(cached.id, [make_person(apollo_id, phone=phone)])
    return lead_id


async def _get(model, **filters):
    async with get_async_session() as session:
        return (await session.execute(select(model).filter_by(**filters))).scalar_one()


class TestExtractPeople:

    @pytest.mark.parametrize("payload", [
        {"matches": [{"id": "p1"}]},
        {"people": [{"id": "p1"}]},
        [{"id": "p1"}],
        {"id": "p1"},
    ])
    def test_accepted_shapes(self, payload):
        assert extract_people(payload) == [{"id": "p1"}]

    def test_non_dict_entries_dropped(self):
        assert extract_people([{"id": "p1"}, "junk", None]) == [{"id": "p1"}]

    @pytest.mark.parametrize("payload", [{"status": "ok"}, "text", 42])
    def test_rejected_shapes(self, payload):
        with pytest.raises(ValidationError):
            extract_people(payload)


class TestPickPhone:

    def test_prefers_verified_sanitized(self):
        numbers = [
            {"sanitized_number": "+15550001", "status": "unverified"},
            {"sanitized_number": "+15550002", "status": "verified"},
        ]
        assert pick_phone(numbers) == "+15550002"

    def test_falls_back_to_sanitized_then_raw(self):
        assert pick_phone([{"raw_number": "555"}, {"sanitized_number": "+1555"}]) == "+1555"
        assert pick_phone([{"raw_number": "(555) 0100"}]) == "(555) 0100"

    def test_nothing_usable(self):
        assert pick_phone(None) is None
        assert pick_phone([{"status": "verified"}]) is None


class TestPhoneWebhookHandler:

    @pytest.mark.asyncio
    async def test_phone_found(self, org):
        lead_id = await _pending_lead(org)

        result = await PhoneWebhookHandler().apply({
            "people": [{"id": "p1", "phone_numbers": [{"sanitized_number": "+15550100", "status": "verified"}]}],
        })

        assert result == {"updated": 1, "errors": 0}
        lead = await _get(Lead, id=lead_id)
        assert lead.phone == "+15550100"
        assert lead.meta["phonePending"] is False
        assert lead.meta["phoneFound"] is True
        assert lead.meta["apolloId"] == "p1"
        assert (await _get(Employee, apollo_id="p1")).phone == "+15550100"
        assert (await _get(GlobalEmployee, apollo_id="p1")).phone == "+15550100"

    @pytest.mark.asyncio
    async def test_phone_not_found_clears_pending(self, org):
        lead_id = await _pending_lead(org)

        result = await PhoneWebhookHandler().apply({"id": "p1", "phone_numbers": []})

        assert result == {"updated": 1, "errors": 0}
        lead = await _get(Lead, id=lead_id)
        assert lead.phone is None
        assert lead.meta["phonePending"] is False
        assert lead.meta["phoneFound"] is False

    @pytest.mark.asyncio
    async def test_existing_employee_phone_is_kept(self, org):
        await _pending_lead(org, phone="+15559999")

        await PhoneWebhookHandler().apply([{"id": "p1", "phone_numbers": [{"raw_number": "+15550100"}]}])

        assert (await _get(Employee, apollo_id="p1")).phone == "+15559999"

    @pytest.mark.asyncio
    async def test_unknown_person_and_missing_id(self, db):
        result = await PhoneWebhookHandler().apply({"matches": [{"id": "ghost"}, {"name": "no id"}]})

        assert result == {"updated": 0, "errors": 0}
