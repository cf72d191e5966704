from __future__ import annotations

from flask import Blueprint, abort, current_app, jsonify, request

from api.api_v1.request_context import current_principal, current_session
from api.schemas.api_responses import ok
from api.services import vocabulary_service
from models.profiles import ROLE_ADMIN
from utils.errors import AccessDenied, ValidationError

tags_v1_bp = Blueprint("tags_v1", __name__, url_prefix="/tags")


def _body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("body", "must be a JSON object")
    return data


def _require_vocabulary_admin() -> None:
    if not current_app.config.get("ENABLE_VOCABULARY_ADMIN", True):
        abort(404)


@tags_v1_bp.get("/<field>")
def list_tags(field: str):
    """Active values of a field with labels and usage counts."""

    return jsonify(ok(vocabulary_service.list_vocabulary(current_session(), field)))


@tags_v1_bp.post("/<field>/validate")
def validate_tags(field: str):
    """Dry-run validation of `{"values": [...]}`; never writes."""

    values = _body().get("values")
    return jsonify(ok(vocabulary_service.validate_tags(current_session(), field, values)))


@tags_v1_bp.get("/<field>/suggest")
def suggest_tag(field: str):
    """Closest existing value for free text, e.g. `?q=Sequoia Capital`."""

    result = vocabulary_service.suggest_value(current_session(), field, request.args.get("q"))
    return jsonify(ok(result))


@tags_v1_bp.get("/<field>/history")
def tag_history(field: str):
    _require_vocabulary_admin()
    if current_principal().role != ROLE_ADMIN:
        raise AccessDenied()
    return jsonify(ok(vocabulary_service.version_history(current_session(), field)))


@tags_v1_bp.post("/<field>/terms")
def add_term(field: str):
    """Add a value (`{"value": ..., "status": "active"|"proposed"}`)."""

    _require_vocabulary_admin()
    body = _body()
    status = (body.get("status") or "active").strip().lower()
    if status == "proposed":
        op = vocabulary_service.propose_term
    elif status == "active":
        op = vocabulary_service.add_term
    else:
        raise ValidationError("status", "must be 'active' or 'proposed'")
    result = op(current_session(), current_principal(), field, body.get("value"))
    return jsonify(ok(result)), 201


@tags_v1_bp.post("/<field>/terms/<value>/activate")
def activate_term(field: str, value: str):
    _require_vocabulary_admin()
    result = vocabulary_service.activate_term(
        current_session(), current_principal(), field, value
    )
    return jsonify(ok(result))


@tags_v1_bp.post("/<field>/rename")
def rename_term(field: str):
    """Rename `{"old": ..., "new": ...}` and rewrite every attachment."""

    _require_vocabulary_admin()
    body = _body()
    result = vocabulary_service.rename_term(
        current_session(), current_principal(), field, body.get("old"), body.get("new")
    )
    return jsonify(ok(result))


@tags_v1_bp.post("/<field>/merge")
def merge_terms(field: str):
    """Merge `{"sources": [...], "target": ...}`."""

    _require_vocabulary_admin()
    body = _body()
    sources = body.get("sources")
    if not isinstance(sources, list):
        raise ValidationError("sources", "must be a list")
    result = vocabulary_service.merge_terms(
        current_session(), current_principal(), field, sources, body.get("target")
    )
    return jsonify(ok(result))


@tags_v1_bp.post("/<field>/retire")
def retire_term(field: str):
    """Retire `{"value": ..., "remap_to": ..., "null_out": bool}`."""

    _require_vocabulary_admin()
    body = _body()
    result = vocabulary_service.retire_term(
        current_session(),
        current_principal(),
        field,
        body.get("value"),
        remap_to=body.get("remap_to"),
        null_out=bool(body.get("null_out", False)),
    )
    return jsonify(ok(result))
