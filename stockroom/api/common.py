from __future__ import annotations

import json

from flask import current_app, g, request

from stockroom.db import connect
from stockroom.errors import ValidationError
from stockroom.utils import whole_number


def get_db():
    """One connection per request, closed in `close_db`."""
    if "db" not in g:
        g.db = connect(current_app.config["DATABASE"])
    return g.db


def close_db(exc=None) -> None:
    db = g.pop("db", None)
    if db is not None:
        db.close()


def body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def required(data: dict, *names: str):
    """First present, non-empty value among `names` (aliases for one field)."""
    for name in names:
        if data.get(name) not in (None, ""):
            return data[name]
    raise ValidationError(f"Missing required field '{names[0]}'.", field=names[0])


def row_json(row) -> dict | None:
    if row is None:
        return None
    out = dict(row)
    for key in ("components_used", "ingredients"):
        if isinstance(out.get(key), str):
            try:
                out[key] = json.loads(out[key])
            except json.JSONDecodeError:
                pass
    return out


def rows_json(rows) -> list[dict]:
    return [row_json(r) for r in rows]


def as_int(value, field: str) -> int:
    return whole_number(value, field)
