"""Request dependencies: caller identity and the service container."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, Request

from hirescout.core.services import Services


@dataclass
class Caller:
    org_id: str
    user_id: str | None = None


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_caller(
    x_org_id: str = Header(..., alias="X-Org-Id"),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> Caller:
    return Caller(org_id=x_org_id, user_id=x_user_id)
