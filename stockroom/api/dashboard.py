from __future__ import annotations

from flask import Blueprint, jsonify

from stockroom.api.common import body, get_db, row_json
from stockroom.services.dashboard import dashboard_stats, get_notes, save_notes, update_notes

bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@bp.route("/stats", methods=["GET"])
def stats():
    return jsonify(dashboard_stats(get_db()))


@bp.route("/notes", methods=["GET"])
def notes():
    return jsonify(row_json(get_notes(get_db())))


@bp.route("/notes", methods=["POST"])
def create_notes():
    conn = get_db()
    created = save_notes(conn, body().get("content", ""))
    return jsonify(row_json(get_notes(conn))), 201 if created else 200


@bp.route("/notes/<int:notes_id>", methods=["PUT"])
def edit_notes(notes_id: int):
    conn = get_db()
    update_notes(conn, notes_id, body().get("content", ""))
    return jsonify(row_json(get_notes(conn)))
