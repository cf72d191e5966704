from __future__ import annotations

from flask import Blueprint, jsonify, request

from api.api_v1.request_context import current_principal, current_session
from api.schemas.api_responses import ok, request_meta
from api.services import entity_service
from utils.errors import ValidationError

entities_v1_bp = Blueprint("entities_v1", __name__, url_prefix="/entities")


def _field_groups():
    raw = (request.args.get("groups") or "").strip()
    if not raw:
        return None
    return [g.strip() for g in raw.split(",") if g.strip()]


def _int_arg(name: str, default: int) -> int:
    try:
        return int((request.args.get(name) or "").strip() or default)
    except ValueError:
        return default


def _expected_version():
    """Optional optimistic check from the `If-Match` header (a row_version)."""

    raw = (request.headers.get("If-Match") or "").strip().strip('"')
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError("If-Match", "must be an integer row version") from exc


@entities_v1_bp.get("/<entity_type>")
def list_entities(entity_type: str):
    """List records of a type.

    Query params:
    - groups: comma-separated field groups (default: all the caller may read)
    - offset, limit: paging (limit max 500)
    """

    offset = _int_arg("offset", 0)
    rows = entity_service.list_entities(
        current_session(),
        current_principal(),
        entity_type,
        _field_groups(),
        offset=offset,
        limit=_int_arg("limit", 100),
    )
    return jsonify(ok(rows, meta=request_meta(count=len(rows), offset=max(0, offset))))


@entities_v1_bp.get("/<entity_type>/<int:entity_id>")
def get_entity(entity_type: str, entity_id: int):
    row = entity_service.read_entity(
        current_session(), current_principal(), entity_type, entity_id, _field_groups()
    )
    return jsonify(ok(row))


@entities_v1_bp.patch("/<entity_type>/<int:entity_id>")
def patch_entity(entity_type: str, entity_id: int):
    row = entity_service.write_entity(
        current_session(),
        current_principal(),
        entity_type,
        entity_id,
        request.get_json(silent=True),
        expected_version=_expected_version(),
    )
    return jsonify(ok(row))


@entities_v1_bp.post("/<entity_type>")
def create_entity(entity_type: str):
    row = entity_service.create_entity(
        current_session(), current_principal(), entity_type, request.get_json(silent=True)
    )
    return jsonify(ok(row)), 201
