from __future__ import annotations

from flask import Blueprint, jsonify, request

from stockroom.api.common import as_int, body, get_db, required, row_json, rows_json
from stockroom.services.production import (
    delete_production,
    list_production,
    record_full_batch,
    record_production,
    record_quick_batch,
    require_production,
    update_production,
)

bp = Blueprint("production", __name__, url_prefix="/api/production")


def _flag(data: dict, name: str, default: bool) -> bool:
    v = data.get(name, default)
    if isinstance(v, str):
        return v.strip().lower() in ("true", "1", "yes", "on")
    return bool(v)


@bp.route("", methods=["GET"])
def index():
    product_id = request.args.get("product_id")
    rows = list_production(get_db(), as_int(product_id, "product_id") if product_id else None)
    return jsonify(rows_json(rows))


@bp.route("/<int:batch_id>", methods=["GET"])
def show(batch_id: int):
    return jsonify(row_json(require_production(get_db(), batch_id)))


@bp.route("", methods=["POST"])
def create():
    data = body()
    conn = get_db()
    product_id = as_int(required(data, "product_id"), "product_id")
    quantity = required(data, "quantity_produced", "quantity_made", "quantity")
    kwargs = dict(
        production_date=data.get("production_date"),
        batch_number=data.get("batch_number"),
        notes=data.get("notes"),
    )

    if not _flag(data, "consume_components", True):
        batch_id = record_production(conn, product_id, quantity, **kwargs)
    elif _flag(data, "include_labels", False):
        batch_id = record_full_batch(conn, product_id, quantity, **kwargs).batch_id
    else:
        batch_id = record_quick_batch(conn, product_id, quantity, **kwargs).batch_id

    return jsonify(row_json(require_production(conn, batch_id))), 201


@bp.route("/<int:batch_id>", methods=["PUT"])
def update(batch_id: int):
    data = body()
    conn = get_db()
    product_id = data.get("product_id")
    update_production(
        conn,
        batch_id,
        quantity_made=required(data, "quantity_produced", "quantity_made", "quantity"),
        production_date=data.get("production_date"),
        notes=data.get("notes"),
        product_id=as_int(product_id, "product_id") if product_id is not None else None,
        batch_number=data.get("batch_number"),
    )
    return jsonify(row_json(require_production(conn, batch_id)))


@bp.route("/<int:batch_id>", methods=["DELETE"])
def destroy(batch_id: int):
    delete_production(get_db(), batch_id)
    return jsonify({"success": True})
