"""
Session context: who is operating the portal and whether test mode is on.

The "current user" is a self-reported display name (no authentication); it
scopes the request list and is stamped on new requests as ``poc_user``.
Test mode pre-fills forms with sample data and unlocks the auto-approve
shortcut.

A SessionContext is passed explicitly into the services that need it. The
HTTP layer persists it in the signed Flask session cookie; interested parties
register callbacks via ``subscribe`` and are notified on every change.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable

from role_portal.core.exceptions import ValidationError
from role_portal.utils.helpers import as_bool, email_domain

logger = logging.getLogger(__name__)

Listener = Callable[["SessionContext", str], None]


@dataclass
class SessionContext:
    current_user: str | None = None
    test_mode: bool = False
    _listeners: list = field(default_factory=list, repr=False, compare=False)

    # ── Mutators (each one broadcasts) ───────────────────────────────────

    def identify(self, name: str | None) -> None:
        """Set (or clear, with a blank name) the current user."""
        name = (name or "").strip() or None
        if name == self.current_user:
            return
        self.current_user = name
        logger.info("Session user changed", extra={"poc_user": name})
        self._notify("current_user")

    def set_test_mode(self, enabled: bool) -> None:
        enabled = as_bool(enabled)
        if enabled == self.test_mode:
            return
        self.test_mode = enabled
        logger.info("Test mode %s", "enabled" if enabled else "disabled",
                    extra={"poc_user": self.current_user})
        self._notify("test_mode")

    def start_new_request(self) -> None:
        """Starting a fresh request always leaves test mode."""
        self.set_test_mode(False)

    # ── Observers ────────────────────────────────────────────────────────

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register *callback(ctx, changed_key)*; returns an unsubscribe function."""
        self._listeners.append(callback)

        def _unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _notify(self, key: str) -> None:
        for callback in list(self._listeners):
            callback(self, key)

    # ── Helpers ──────────────────────────────────────────────────────────

    def require_user(self) -> str:
        if not self.current_user:
            raise ValidationError(
                "Please identify yourself before submitting a request",
                details={"current_user": "required"},
            )
        return self.current_user

    def to_dict(self) -> dict:
        return {"current_user": self.current_user, "test_mode": self.test_mode}

    @classmethod
    def from_dict(cls, data: dict | None) -> "SessionContext":
        data = data or {}
        return cls(
            current_user=(data.get("current_user") or None),
            test_mode=as_bool(data.get("test_mode", False)),
        )


def sample_form_data(ctx: SessionContext, area_type: str | None = None, today: date | None = None) -> dict:
    """Sample main-form values used to pre-fill the form in test mode."""
    today = today or date.today()
    submitter = ctx.current_user or "Test Submitter"
    submitter_slug = re.sub(r"\s+", ".", (ctx.current_user or "testsubmitter").lower())

    data = {
        "start_date": (today + timedelta(days=7)).isoformat(),
        "employee_name": "John Test User",
        "employee_id": "12345",
        "is_non_employee": False,
        "work_location": "Test Building, Room 123",
        "work_phone": "6515551234",
        "email": f"john.testuser@{email_domain()}",
        "agency_name": "Administration",
        "agency_code": "G02",
        "justification": "This is test data for development and testing purposes.",
        "submitter_name": submitter,
        "submitter_email": f"{submitter_slug}@{email_domain()}",
        "supervisor_name": "Jane Test Supervisor",
        "supervisor_username": "jane.supervisor",
        "security_admin_name": "Bob Test Admin",
        "security_admin_username": "bob.admin",
        "selection_option": "select",
    }
    if area_type:
        data["security_area"] = area_type
    if area_type == "accounting_procurement":
        data["accounting_director"] = "Alice Test Director"
        data["accounting_director_username"] = "alice.director"
    elif area_type == "elm":
        data["elm_key_admin"] = "Carol Test ELM Admin"
        data["elm_key_admin_username"] = "carol.elmadmin"
    elif area_type == "hr_payroll":
        data["hr_mainframe_logon_id"] = "TSTHR01"
        data["hr_view_statewide"] = False
    return data
