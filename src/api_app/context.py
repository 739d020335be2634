"""
Request context helpers.

Identity is issued upstream (gateway / auth service); by the time a request
reaches this API the tenant and user are forwarded as headers.
"""

from __future__ import annotations

from flask import request

from revo_orders.errors import ValidationError
from revo_orders.validation import is_storable_id

TENANT_HEADER = "X-Tenant-ID"
USER_HEADER = "X-User-ID"


def get_tenant_id() -> int:
    raw = (request.headers.get(TENANT_HEADER) or "").strip()
    if not raw:
        raise ValidationError(f"{TENANT_HEADER} header is required")
    try:
        tenant_id = int(raw)
    except ValueError:
        raise ValidationError(f"{TENANT_HEADER} must be an integer") from None
    if not is_storable_id(tenant_id):
        raise ValidationError(f"{TENANT_HEADER} must be a positive id")
    return tenant_id


def get_user_id() -> str | None:
    return (request.headers.get(USER_HEADER) or "").strip() or None


def get_json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload
