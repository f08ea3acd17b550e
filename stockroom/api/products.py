from __future__ import annotations

from flask import Blueprint, jsonify

from stockroom.api.common import as_int, body, get_db, required, row_json, rows_json
from stockroom.errors import NotFoundError
from stockroom.services.products import (
    create_product,
    delete_product,
    get_product,
    link_component,
    list_products,
    product_components,
    update_product,
)

bp = Blueprint("products", __name__, url_prefix="/api/products")


@bp.route("", methods=["GET"])
def index():
    return jsonify(rows_json(list_products(get_db())))


@bp.route("/<int:product_id>", methods=["GET"])
def show(product_id: int):
    p = get_product(get_db(), product_id)
    if p is None:
        raise NotFoundError("Product", product_id)
    return jsonify(row_json(p))


@bp.route("", methods=["POST"])
def create():
    data = body()
    conn = get_db()
    product_id = create_product(
        conn,
        name=required(data, "name"),
        size=data.get("size", ""),
        lid_color=data.get("lid_color", ""),
        bottle_type=data.get("bottle_type", ""),
        price=data.get("price", 0),
        description=data.get("description", ""),
        current_stock=data.get("current_stock", 0),
    )
    return jsonify(row_json(get_product(conn, product_id))), 201


@bp.route("/<int:product_id>", methods=["PUT"])
def update(product_id: int):
    data = body()
    conn = get_db()
    fields = {
        k: data[k]
        for k in ("name", "size", "current_stock", "lid_color", "bottle_type", "price", "description")
        if k in data
    }
    update_product(conn, product_id, **fields)
    return jsonify(row_json(get_product(conn, product_id)))


@bp.route("/<int:product_id>", methods=["DELETE"])
def destroy(product_id: int):
    delete_product(get_db(), product_id)
    return jsonify({"success": True})


@bp.route("/<int:product_id>/components", methods=["GET"])
def components(product_id: int):
    return jsonify(product_components(get_db(), product_id))


@bp.route("/<int:product_id>/components", methods=["POST"])
def link(product_id: int):
    data = body()
    conn = get_db()
    role = required(data, "role", "category")
    link_component(conn, product_id, str(role), as_int(required(data, "component_id"), "component_id"))
    linked = next(c for c in product_components(conn, product_id) if c["role"] == role)
    return jsonify(linked), 201
