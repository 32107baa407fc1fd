"""
Role selection blueprint.

Routes:
  GET  /api/v1/requests/<id>/roles/<area_type>   – saved choices as form values
  PUT  /api/v1/requests/<id>/roles/<area_type>   – save (upsert) the sub-form
  POST /api/v1/requests/<id>/roles/copy          – copy an existing user's roles
"""

import logging

from flask import Blueprint, jsonify

from role_portal.blueprints import json_body
from role_portal.services import request_lifecycle, role_selection_service
from role_portal.services.role_catalog import variant_for
from role_portal.utils.errors import register_service_error_handlers

logger = logging.getLogger(__name__)

roles_bp = Blueprint("roles_bp", __name__, url_prefix="/api/v1/requests")
register_service_error_handlers(roles_bp)


@roles_bp.route("/<request_id>/roles/copy", methods=["POST"])
def copy_roles(request_id):
    data = json_body(snake=True)
    copy = role_selection_service.copy_roles_for_request(
        request_id, data.get("copy_user_employee_id") or data.get("employee_id")
    )
    return jsonify({"copied": copy is not None, "selection": copy.to_dict() if copy else None})


@roles_bp.route("/<request_id>/roles/<area_type>", methods=["GET"])
def get_roles(request_id, area_type):
    request_lifecycle.get_request(request_id)
    variant_for(area_type)
    form = role_selection_service.load_existing_selections(request_id, area_type)
    return jsonify({"area_type": area_type, "exists": form is not None, "form": form})


@roles_bp.route("/<request_id>/roles/<area_type>", methods=["PUT"])
def save_roles(request_id, area_type):
    row, notices = role_selection_service.save_selections(request_id, area_type, json_body())
    return jsonify({
        "selection": row.to_dict(),
        "notices": notices,
        "next": request_lifecycle.SUCCESS.to_dict(request_id),
    })
