"""
Session blueprint: who is operating the portal, and test mode.

Routes:
  GET   /api/v1/session               – current user + test mode
  PUT   /api/v1/session               – identify / toggle test mode
  POST  /api/v1/session/new-request   – start a fresh request (test mode off)
  GET   /api/v1/session/test-data     – sample main-form values (test mode only)
"""

import logging

from flask import Blueprint, jsonify, request

from role_portal.blueprints import current_context, json_body
from role_portal.core.exceptions import PreconditionError
from role_portal.services.approval_engine import auto_approve_permitted
from role_portal.services.session_context import sample_form_data
from role_portal.utils.errors import register_service_error_handlers
from role_portal.utils.helpers import as_bool

logger = logging.getLogger(__name__)

session_bp = Blueprint("session_bp", __name__, url_prefix="/api/v1/session")
register_service_error_handlers(session_bp)


def _payload(ctx):
    return {**ctx.to_dict(), "test_mode_available": auto_approve_permitted()}


@session_bp.route("", methods=["GET"])
def get_session():
    return jsonify(_payload(current_context()))


@session_bp.route("", methods=["PUT"])
def update_session():
    data = json_body(snake=True)
    ctx = current_context()
    if "current_user" in data:
        ctx.identify(data.get("current_user"))
    if "test_mode" in data:
        enabled = as_bool(data.get("test_mode"))
        if enabled and not auto_approve_permitted():
            raise PreconditionError("Test mode is disabled in this deployment")
        ctx.set_test_mode(enabled)
    return jsonify(_payload(ctx))


@session_bp.route("/new-request", methods=["POST"])
def new_request():
    ctx = current_context()
    ctx.start_new_request()
    return jsonify(_payload(ctx))


@session_bp.route("/test-data", methods=["GET"])
def test_data():
    ctx = current_context()
    if not (ctx.test_mode and auto_approve_permitted()):
        raise PreconditionError("Test data is only available in test mode")
    return jsonify(sample_form_data(ctx, request.args.get("area") or None))
