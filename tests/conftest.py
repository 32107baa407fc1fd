"""
Shared pytest fixtures for the Security Role Request Portal test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - ctx: SessionContext for an identified POC user
    - make_form / make_request: main-form payloads and persisted requests
    - finish_request: drive a request through approval to completion
"""

from datetime import date, timedelta

import pytest

from role_portal import create_app
from role_portal.models import db as _db
from role_portal.services.session_context import SessionContext

POC_USER = "Pat Contact"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def ctx():
    """SessionContext for the POC user who creates requests in tests."""
    return SessionContext(current_user=POC_USER)


def _main_form(area="elm", **overrides):
    form = {
        "start_date": (date.today() + timedelta(days=7)).isoformat(),
        "employee_name": "Jordan Employee",
        "employee_id": "100200",
        "is_non_employee": False,
        "work_location": "Centennial Building",
        "work_phone": "(651) 555-0100",
        "email": "jordan.employee@state.mn.us",
        "agency_name": "Administration",
        "agency_code": "G02",
        "justification": "New hire",
        "submitter_name": "Sam Submitter",
        "submitter_email": "sam.submitter@state.mn.us",
        "supervisor_name": "Sue Supervisor",
        "supervisor_username": "sue.supervisor",
        "security_admin_name": "Ada Admin",
        "security_admin_username": "ada.admin",
        "security_area": area,
        "selection_option": "select",
    }
    if area == "accounting_procurement":
        form["accounting_director"] = "Dana Director"
        form["accounting_director_username"] = "dana.director"
    elif area == "elm":
        form["elm_key_admin"] = "Kim Keyadmin"
        form["elm_key_admin_username"] = "kim.keyadmin"
    elif area == "hr_payroll":
        form["hr_mainframe_logon_id"] = "HRL0G1"
        form["hr_view_statewide"] = False
    form.update(overrides)
    return form


@pytest.fixture()
def make_form():
    """Factory for a valid main-form payload: make_form("hr_payroll", employee_name=...)."""
    return _main_form


@pytest.fixture()
def make_request(ctx):
    """Factory that persists a request through the lifecycle service."""
    from role_portal.services.request_lifecycle import create_request

    def _make(area="elm", **overrides):
        req, _ = create_request(_main_form(area, **overrides), ctx)
        return req

    return _make


@pytest.fixture()
def finish_request():
    """Auto-approve every step of a request and mark it completed."""
    from role_portal.services.approval_engine import auto_approve_all_pending, complete_request

    def _finish(req, completed_by="Casey Closer"):
        auto_approve_all_pending(req.id, SessionContext(current_user=POC_USER, test_mode=True))
        return complete_request(req.id, completed_by)

    return _finish
