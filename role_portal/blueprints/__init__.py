"""
Blueprint registry and shared request helpers.

The operator's identity and test-mode flag travel in the signed session
cookie. API clients that do not keep cookies can send the display name in
the ``X-User`` header instead.
"""

from flask import abort, request, session

from role_portal.services.session_context import SessionContext
from role_portal.utils.helpers import snake_keys

SESSION_KEY = "portal_context"


def current_context() -> SessionContext:
    """Build the SessionContext for this HTTP request."""
    ctx = SessionContext.from_dict(session.get(SESSION_KEY))
    if not ctx.current_user:
        header_user = (request.headers.get("X-User") or "").strip()
        if header_user:
            ctx.current_user = header_user
    ctx.subscribe(_persist)
    return ctx


def _persist(ctx: SessionContext, _changed: str) -> None:
    session[SESSION_KEY] = ctx.to_dict()


def json_body(snake: bool = False) -> dict:
    """Parsed JSON object body; 400 when a body is present but malformed."""
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data(cache=True):
            abort(400, description="Request body must be valid JSON")
        data = {}
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object")
    return snake_keys(data) if snake else data
