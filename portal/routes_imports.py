# portal/routes_imports.py
"""
Menu import API.

  POST /api/menus/upload                  multipart 'file' (+ 'format', 'menu_name') -> ParseResult
  POST /api/menus/<menu_id>/reconcile     ParseResult JSON -> conflicts + summary
  POST /api/menus/<menu_id>/commit        {menu_name, items, entries} -> ImportResult (200) | job (202)
  GET  /api/menus/import/<job_id>/status  job snapshot
  GET  /api/menus/templates/<fmt>         import template download (xlsx | csv | json)

The repository and job runner live on app.config (MENU_REPOSITORY,
IMPORT_RUNNER) so tests can swap in an in-memory store.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, make_response, request
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

from ingest.contracts import ImportJob, ParseResult, ResolutionPlan
from ingest.errors import FormatError, InvalidPlanError, RepositoryUnavailableError
from ingest.readers.registry import sniff_format
from ingest.reconcile import reconcile, summarize
from ingest.session import parse_document
from ingest.templates import build_template

log = logging.getLogger(__name__)

imports_bp = Blueprint("imports", __name__)


# ------------------------
# Helpers
# ------------------------
def _repository():
    return current_app.config["MENU_REPOSITORY"]


def _runner():
    return current_app.config["IMPORT_RUNNER"]


def _json_payload() -> Optional[Dict[str, Any]]:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else None


def _resolve_restaurant_id_from_request(payload: Optional[Dict[str, Any]] = None) -> Optional[str]:
    """
    Acting restaurant, as handed over by the auth layer:
      - X-Restaurant-Id header
      - else 'restaurant_id' form / query / JSON field
    """
    rid = request.headers.get("X-Restaurant-Id")
    if rid is None or str(rid).strip() == "":
        rid = request.values.get("restaurant_id")
    if (rid is None or str(rid).strip() == "") and payload:
        rid = payload.get("restaurant_id")
    if rid is None or str(rid).strip() == "":
        return None
    return str(rid).strip()


def _error(message: str, status: int, **extra: Any):
    return jsonify({"ok": False, "error": message, **extra}), status


# ------------------------
# Upload -> ParseResult
# ------------------------
@imports_bp.post("/api/menus/upload")
def upload_menu():
    try:
        if "file" not in request.files:
            return _error("No file field 'file' provided", 400)
        file = request.files["file"]
        if file.filename == "":
            return _error("Empty filename", 400)

        filename = secure_filename(file.filename) or "upload"
        data = file.read()
        if not data:
            return _error("Empty file", 400)

        fmt = (request.form.get("format") or "").strip() or sniff_format(filename, data)
        result = parse_document(
            data,
            fmt,
            menu_name=request.form.get("menu_name"),
            filename=filename,
        )
    except RequestEntityTooLarge:
        return _error("File too large. Try a smaller file or raise MAX_UPLOAD_MB.", 413)
    except FormatError as e:
        log.info("upload %r rejected: %s", request.files.get("file"), e)
        return _error(str(e), 400, format=e.fmt)

    return jsonify({"ok": True, **result.to_dict()}), 200


# ------------------------
# Reconcile
# ------------------------
@imports_bp.post("/api/menus/<menu_id>/reconcile")
def reconcile_menu(menu_id: str):
    payload = _json_payload()
    if payload is None:
        return _error("Expected JSON payload", 400)
    try:
        parse_result = ParseResult.from_dict(payload)
    except (KeyError, TypeError, ValueError) as e:
        return _error(f"invalid parse result: {e}", 400)

    try:
        existing = _repository().list_items(menu_id)
    except RepositoryUnavailableError as e:
        return _error(str(e), 503)

    conflicts = reconcile(parse_result, existing)
    return jsonify({
        "ok": True,
        "menu_id": menu_id,
        "conflicts": [c.to_dict() for c in conflicts],
        "summary": summarize(conflicts),
    }), 200


# ------------------------
# Commit
# ------------------------
@imports_bp.post("/api/menus/<menu_id>/commit")
def commit_menu(menu_id: str):
    payload = _json_payload()
    if payload is None:
        return _error("Expected JSON payload", 400)
    try:
        plan = ResolutionPlan.from_dict(payload)
    except (KeyError, TypeError, ValueError) as e:
        return _error(f"invalid resolution plan: {e}", 400)

    try:
        outcome = _runner().commit(plan, menu_id, _resolve_restaurant_id_from_request(payload))
    except InvalidPlanError as e:
        return _error(str(e), 400, problems=e.problems)

    if isinstance(outcome, ImportJob):
        return jsonify({
            "ok": True,
            "job_id": outcome.job_id,
            "status": outcome.status.value,
            "message": f"Import of {outcome.total_items} items queued; poll /api/menus/import/{outcome.job_id}/status",
        }), 202
    return jsonify({"ok": True, **outcome.to_dict()}), 200


# ------------------------
# Job status
# ------------------------
@imports_bp.get("/api/menus/import/<job_id>/status")
def import_status(job_id: str):
    try:
        job = _runner().get_job(job_id)
    except KeyError:
        return _error("Import job not found", 404)
    return jsonify({"ok": True, **job.to_dict()}), 200


# ------------------------
# Import templates
# ------------------------
@imports_bp.get("/api/menus/templates/<fmt>")
def import_template(fmt: str):
    try:
        data, content_type, filename = build_template(fmt)
    except ValueError as e:
        return _error(str(e), 404)
    resp = make_response(data)
    resp.headers["Content-Type"] = content_type
    resp.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp
