"""
Orders API - endpoints over the order lifecycle engine.
Handles order creation, item additions, status changes, payment and cancellation.
"""

from http import HTTPStatus

from flask import Blueprint, jsonify, request

from api_app.context import get_json_body, get_tenant_id, get_user_id
from revo_orders.schemas import (
    AddItemsRequest,
    CancelOrderRequest,
    CreateOrderRequest,
    DailySummaryParams,
    OrderListParams,
    PayOrderRequest,
    UpdateStatusRequest,
)
from revo_orders.serializers import serialize_kitchen_order, serialize_order, success_response
from revo_orders.services import order_service

orders_bp = Blueprint("orders", __name__)


def _no_cache(response):
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


@orders_bp.get("/orders")
def get_orders():
    """
    Paginated order history with optional filters
    """
    params = OrderListParams.model_validate(request.args.to_dict())
    result = order_service.list_orders(
        get_tenant_id(),
        status=params.status,
        order_type=params.order_type,
        table_id=params.table_id,
        date_from=params.date_from,
        date_to=params.date_to,
        page=params.page,
        per_page=params.per_page,
    )
    data = {
        "orders": [serialize_order(order) for order in result["orders"]],
        "meta": result["meta"],
    }
    return _no_cache(jsonify(success_response(data)))


@orders_bp.get("/orders/active")
def get_active_orders():
    orders = order_service.list_active_orders(get_tenant_id())
    return _no_cache(jsonify(success_response([serialize_order(order) for order in orders])))


@orders_bp.get("/orders/kitchen")
def get_kitchen_orders():
    """
    Orders pending in the kitchen (kitchen display)
    """
    orders = order_service.get_kitchen_orders(get_tenant_id())
    return _no_cache(
        jsonify(success_response([serialize_kitchen_order(order) for order in orders]))
    )


@orders_bp.get("/orders/kitchen/stats")
def get_kitchen_stats():
    params = DailySummaryParams.model_validate(request.args.to_dict())
    stats = order_service.get_kitchen_stats(get_tenant_id(), params.day)
    return _no_cache(jsonify(success_response(stats)))


@orders_bp.get("/orders/summary/daily")
def get_daily_summary():
    params = DailySummaryParams.model_validate(request.args.to_dict())
    summary = order_service.get_daily_summary(get_tenant_id(), params.day)
    return jsonify(success_response(summary))


@orders_bp.get("/orders/<int:order_id>")
def get_order(order_id: int):
    order = order_service.get_order(get_tenant_id(), order_id)
    return jsonify(success_response(serialize_order(order)))


@orders_bp.post("/orders")
def post_order():
    tenant_id = get_tenant_id()
    payload = CreateOrderRequest.model_validate(get_json_body())
    order = order_service.create_order(
        tenant_id,
        get_user_id(),
        order_type=payload.order_type,
        items=payload.items,
        table_id=payload.table_id,
        notes=payload.notes,
    )
    return jsonify(success_response(serialize_order(order))), HTTPStatus.CREATED


@orders_bp.post("/orders/<int:order_id>/items")
def post_order_items(order_id: int):
    tenant_id = get_tenant_id()
    payload = AddItemsRequest.model_validate(get_json_body())
    order = order_service.add_items(tenant_id, order_id, payload.items)
    return jsonify(success_response(serialize_order(order)))


@orders_bp.patch("/orders/<int:order_id>/status")
def patch_order_status(order_id: int):
    tenant_id = get_tenant_id()
    payload = UpdateStatusRequest.model_validate(get_json_body())
    order = order_service.update_order_status(tenant_id, order_id, payload.status)
    return jsonify(success_response(serialize_order(order)))


@orders_bp.patch("/orders/<int:order_id>/items/<int:item_id>/status")
def patch_item_status(order_id: int, item_id: int):
    tenant_id = get_tenant_id()
    payload = UpdateStatusRequest.model_validate(get_json_body())
    order = order_service.update_item_status(tenant_id, order_id, item_id, payload.status)
    return jsonify(success_response(serialize_order(order)))


@orders_bp.post("/orders/<int:order_id>/pay")
def post_pay_order(order_id: int):
    tenant_id = get_tenant_id()
    payload = PayOrderRequest.model_validate(get_json_body())
    order = order_service.pay_order(
        tenant_id, order_id, payload.payment_method, payload.payments
    )
    return jsonify(success_response(serialize_order(order)))


@orders_bp.post("/orders/<int:order_id>/cancel")
def post_cancel_order(order_id: int):
    tenant_id = get_tenant_id()
    payload = CancelOrderRequest.model_validate(get_json_body())
    order = order_service.cancel_order(tenant_id, order_id, payload.reason)
    return jsonify(success_response(serialize_order(order)))
