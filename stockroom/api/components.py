from __future__ import annotations

from dataclasses import asdict

from flask import Blueprint, jsonify, request

from stockroom.api.common import body, get_db, required, row_json, rows_json
from stockroom.services.components import (
    create_component,
    get_component,
    list_component_purchases,
    list_components,
    record_component_purchase,
    require_component,
)

bp = Blueprint("components", __name__, url_prefix="/api/components")


@bp.route("", methods=["GET"])
def index():
    return jsonify(rows_json(list_components(get_db(), category=request.args.get("category"))))


@bp.route("/<int:component_id>", methods=["GET"])
def show(component_id: int):
    return jsonify(row_json(require_component(get_db(), component_id)))


@bp.route("", methods=["POST"])
def create():
    data = body()
    conn = get_db()
    component_id = create_component(
        conn,
        category=required(data, "category"),
        type=required(data, "type"),
        quantity=data.get("quantity", 0),
        average_cost=data.get("average_cost", 0.0),
    )
    return jsonify(row_json(get_component(conn, component_id))), 201


@bp.route("/<int:component_id>/purchases", methods=["GET"])
def purchases(component_id: int):
    conn = get_db()
    require_component(conn, component_id)
    return jsonify(rows_json(list_component_purchases(conn, component_id)))


@bp.route("/<int:component_id>/purchases", methods=["POST"])
def purchase(component_id: int):
    data = body()
    conn = get_db()
    result = record_component_purchase(
        conn,
        component_id,
        quantity=required(data, "quantity"),
        total_paid=required(data, "total_paid"),
        purchase_date=data.get("purchase_date"),
    )
    return jsonify({"component": row_json(get_component(conn, component_id)), **asdict(result)}), 201
