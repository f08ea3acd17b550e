from __future__ import annotations

from flask import Blueprint, jsonify, request

from stockroom.api.common import as_int, body, get_db, required, row_json, rows_json
from stockroom.errors import NotFoundError, ValidationError
from stockroom.services.sales import (
    SaleLineInput,
    create_sales_event,
    delete_sales_event,
    get_sales_event,
    list_sales_events,
    list_sales_items,
    require_sales_event,
    update_sales_event,
)

bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _lines(data: dict) -> list[SaleLineInput]:
    items = data.get("items")
    if not isinstance(items, list):
        raise ValidationError("'items' must be a list.", field="items")

    lines: list[SaleLineInput] = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Each item must be an object.", field="items")
        lines.append(
            SaleLineInput(
                product_id=as_int(required(item, "product_id"), "product_id"),
                unit_price=item.get("price_per_unit", item.get("unit_price", 0)),
                quantity_sold=item.get("quantity_sold"),
                starting_stock=item.get("starting_stock"),
                ending_stock=item.get("ending_stock"),
                product_name=item.get("product_name"),
            )
        )
    return lines


@bp.route("/events", methods=["GET"])
def events():
    return jsonify(rows_json(list_sales_events(get_db(), month=request.args.get("month"))))


@bp.route("/events/<int:event_id>", methods=["GET"])
def show_event(event_id: int):
    found = get_sales_event(get_db(), event_id)
    if found is None:
        raise NotFoundError("Sales event", event_id)
    return jsonify(found)


@bp.route("/events", methods=["POST"])
def create_event():
    data = body()
    conn = get_db()
    event_id = create_sales_event(
        conn,
        event_name=required(data, "market_name", "event_name"),
        event_date=required(data, "event_date"),
        lines=_lines(data),
        notes=data.get("notes"),
    )
    return jsonify(row_json(require_sales_event(conn, event_id))), 201


@bp.route("/events/<int:event_id>", methods=["PUT"])
def update_event(event_id: int):
    data = body()
    conn = get_db()
    require_sales_event(conn, event_id)
    update_sales_event(
        conn,
        event_id,
        event_name=required(data, "market_name", "event_name"),
        event_date=required(data, "event_date"),
        lines=_lines(data),
        notes=data.get("notes"),
    )
    return jsonify(row_json(require_sales_event(conn, event_id)))


@bp.route("/events/<int:event_id>", methods=["DELETE"])
def delete_event(event_id: int):
    delete_sales_event(get_db(), event_id)
    return jsonify({"success": True})


@bp.route("/items", methods=["GET"])
def items():
    return jsonify(rows_json(list_sales_items(get_db())))
