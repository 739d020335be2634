"""
Tables API - read access to occupancy plus table registration.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify

from api_app.context import get_json_body, get_tenant_id
from revo_orders.schemas import CreateTableRequest
from revo_orders.serializers import serialize_table, success_response
from revo_orders.services import table_service

tables_bp = Blueprint("tables", __name__)


@tables_bp.get("/tables")
def get_tables():
    tables = table_service.list_tables(get_tenant_id())
    return jsonify(success_response([serialize_table(table) for table in tables]))


@tables_bp.get("/tables/<int:table_id>")
def get_table(table_id: int):
    table = table_service.get_table(get_tenant_id(), table_id)
    return jsonify(success_response(serialize_table(table)))


@tables_bp.post("/tables")
def post_table():
    tenant_id = get_tenant_id()
    payload = CreateTableRequest.model_validate(get_json_body())
    table = table_service.create_table(
        tenant_id, payload.number, capacity=payload.capacity, zone_id=payload.zone_id
    )
    return jsonify(success_response(serialize_table(table))), HTTPStatus.CREATED
