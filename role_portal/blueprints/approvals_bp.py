"""
Approval workflow blueprint.

Routes:
  GET  /api/v1/requests/<id>/approvals                  – steps in workflow order
  GET  /api/v1/requests/<id>/approvals/<aid>            – one step (signature page)
  POST /api/v1/requests/<id>/approvals/<aid>/approve    – sign a pending step
  POST /api/v1/requests/<id>/approvals/<aid>/deny       – deny with comments
  POST /api/v1/requests/<id>/approvals/auto-approve     – test mode shortcut
"""

import logging

from flask import Blueprint, jsonify

from role_portal.blueprints import current_context, json_body
from role_portal.services import approval_engine, request_lifecycle
from role_portal.utils.errors import register_service_error_handlers

logger = logging.getLogger(__name__)

approvals_bp = Blueprint("approvals_bp", __name__, url_prefix="/api/v1/requests")
register_service_error_handlers(approvals_bp)


def _with_link(request_id, approval):
    return {**approval.to_dict(), "review_link": approval_engine.review_link(request_id, approval.id)}


@approvals_bp.route("/<request_id>/approvals", methods=["GET"])
def list_approvals(request_id):
    request_lifecycle.get_request(request_id)
    approvals = approval_engine.list_approvals(request_id)
    next_step = approval_engine.next_pending_step(request_id)
    return jsonify({
        "items": [_with_link(request_id, a) for a in approvals],
        "next_pending_step": _with_link(request_id, next_step) if next_step else None,
        "all_approved": approval_engine.is_fully_approved(request_id),
        "can_complete": approval_engine.can_complete(request_id),
    })


@approvals_bp.route("/<request_id>/approvals/auto-approve", methods=["POST"])
def auto_approve(request_id):
    count = approval_engine.auto_approve_all_pending(request_id, current_context())
    return jsonify({"approved": count})


@approvals_bp.route("/<request_id>/approvals/<approval_id>", methods=["GET"])
def get_approval(request_id, approval_id):
    approval = approval_engine.get_approval(request_id, approval_id)
    req = request_lifecycle.get_request(request_id)
    return jsonify({**_with_link(request_id, approval), "request": req.to_dict()})


@approvals_bp.route("/<request_id>/approvals/<approval_id>/approve", methods=["POST"])
def approve(request_id, approval_id):
    data = json_body(snake=True)
    approval = approval_engine.approve_step(
        request_id, approval_id, data.get("signature_data"), data.get("comments")
    )
    return jsonify(approval.to_dict())


@approvals_bp.route("/<request_id>/approvals/<approval_id>/deny", methods=["POST"])
def deny(request_id, approval_id):
    data = json_body(snake=True)
    approval = approval_engine.deny_step(request_id, approval_id, data.get("comments"))
    return jsonify(approval.to_dict())
