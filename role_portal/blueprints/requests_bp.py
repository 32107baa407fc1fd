"""
Security role request blueprint.

Routes:
  GET    /api/v1/requests               – POC's requests (+ employee filter options)
  POST   /api/v1/requests               – submit the main form
  GET    /api/v1/requests/<id>          – details page
  GET    /api/v1/requests/<id>/edit     – main-form values for editing
  PUT    /api/v1/requests/<id>          – apply the edit form
  DELETE /api/v1/requests/<id>          – delete (idempotent)
  POST   /api/v1/requests/<id>/complete – mark a fully approved request completed
"""

import logging

from flask import Blueprint, jsonify, request

from role_portal.blueprints import current_context, json_body
from role_portal.services import approval_engine, request_lifecycle, request_listing
from role_portal.utils.errors import register_service_error_handlers

logger = logging.getLogger(__name__)

requests_bp = Blueprint("requests_bp", __name__, url_prefix="/api/v1/requests")
register_service_error_handlers(requests_bp)


@requests_bp.route("", methods=["GET"])
def list_requests():
    ctx = current_context()
    employee_name = request.args.get("employee_name")
    items = request_listing.list_requests(ctx, employee_name=employee_name)
    return jsonify({
        "items": items,
        "total": len(items),
        "employee_options": request_listing.employee_options(ctx),
    })


@requests_bp.route("", methods=["POST"])
def create_request():
    ctx = current_context()
    req, destination = request_lifecycle.create_request(json_body(snake=True), ctx)
    return jsonify({"request": req.to_dict(), "next": destination.to_dict(req.id)}), 201


@requests_bp.route("/<request_id>", methods=["GET"])
def get_request(request_id):
    return jsonify(request_lifecycle.get_request_details(request_id))


@requests_bp.route("/<request_id>/edit", methods=["GET"])
def get_edit_form(request_id):
    return jsonify(request_lifecycle.load_request_for_edit(request_id))


@requests_bp.route("/<request_id>", methods=["PUT"])
def update_request(request_id):
    ctx = current_context()
    req, destination = request_lifecycle.edit_request(request_id, json_body(snake=True), ctx)
    return jsonify({"request": req.to_dict(), "next": destination.to_dict(req.id)})


@requests_bp.route("/<request_id>", methods=["DELETE"])
def delete_request(request_id):
    deleted = request_lifecycle.delete_request(request_id)
    return jsonify({"deleted": deleted, "id": request_id})


@requests_bp.route("/<request_id>/complete", methods=["POST"])
def complete_request(request_id):
    data = json_body(snake=True)
    req = approval_engine.complete_request(request_id, data.get("completed_by"))
    return jsonify(req.to_dict())
