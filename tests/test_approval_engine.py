"""
Tests: approval workflow engine.

Step expansion, canonical ordering, approve / deny transitions, the test-mode
auto-approve shortcut and request completion.
"""

from datetime import datetime, timezone

import pytest

from role_portal.core.exceptions import NotFoundError, PreconditionError, ValidationError
from role_portal.models import db as _db
from role_portal.models.approval import RequestApproval
from role_portal.services import approval_engine as engine
from role_portal.services.session_context import SessionContext


@pytest.fixture()
def testing_ctx(ctx):
    ctx.set_test_mode(True)
    return ctx


def _by_step(request_id):
    return {a.step: a for a in engine.list_approvals(request_id)}


# ── Expansion & ordering ─────────────────────────────────────────────────────


class TestExpansion:
    @pytest.mark.parametrize("area,area_step", [
        ("accounting_procurement", "accounting_director_approval"),
        ("hr_payroll", "hr_director_approval"),
        ("elm", "elm_admin_approval"),
    ])
    def test_area_step_between_supervisor_and_admin(self, area, area_step):
        assert engine.steps_for_area(area) == [
            "user_signature", "supervisor_approval", area_step, "security_admin_approval",
        ]

    def test_epm_has_three_steps(self):
        assert engine.steps_for_area("epm_data_warehouse") == [
            "user_signature", "supervisor_approval", "security_admin_approval",
        ]

    def test_approver_emails(self, make_request):
        req = make_request("hr_payroll")
        steps = _by_step(req.id)
        assert steps["user_signature"].approver_email == "jordan.employee@state.mn.us"
        assert steps["supervisor_approval"].approver_email == "sue.supervisor@state.mn.us"
        assert steps["hr_director_approval"].approver_email == "hr_standard_access@state.mn.us"
        assert steps["security_admin_approval"].approver_email == "ada.admin@state.mn.us"

    def test_ensure_steps_does_not_duplicate(self, make_request):
        req = make_request("elm")
        created = engine.ensure_approval_steps(req, req.primary_area)
        assert created == []
        assert len(engine.list_approvals(req.id)) == 4

    def test_unknown_steps_rank_with_area_steps(self):
        ts = datetime(2026, 1, 1, tzinfo=timezone.utc)
        rows = [
            RequestApproval(id="b", step="security_admin_approval", created_at=ts),
            RequestApproval(id="a", step="custom_review", created_at=ts),
            RequestApproval(id="c", step="user_signature", created_at=ts),
            RequestApproval(id="d", step="elm_admin_approval", created_at=ts),
        ]
        assert [r.id for r in engine.sort_approvals(rows)] == ["c", "a", "d", "b"]

    def test_review_link(self):
        assert engine.review_link("r1", "a1") == "/signature/r1/a1?mode=review"


# ── Approve / deny ───────────────────────────────────────────────────────────


class TestTransitions:
    def test_next_pending_step_advances(self, make_request):
        req = make_request("epm_data_warehouse")
        steps = _by_step(req.id)
        assert engine.next_pending_step(req.id).step == "user_signature"

        engine.approve_step(req.id, steps["user_signature"].id, "Jordan E.")
        assert engine.next_pending_step(req.id).step == "supervisor_approval"

        engine.approve_step(req.id, steps["supervisor_approval"].id, "Sue S.", comments="ok")
        assert engine.next_pending_step(req.id).step == "security_admin_approval"

    def test_approve_records_signature(self, make_request):
        req = make_request()
        step = engine.next_pending_step(req.id)
        approved = engine.approve_step(req.id, step.id, "data:image/png;base64,AAAA")
        assert approved.status == "approved"
        assert approved.signature_data == "data:image/png;base64,AAAA"
        assert approved.approved_at is not None

    def test_approve_twice_is_rejected(self, make_request):
        req = make_request()
        step = engine.next_pending_step(req.id)
        engine.approve_step(req.id, step.id, "sig")
        with pytest.raises(PreconditionError):
            engine.approve_step(req.id, step.id, "sig")

    def test_blank_signature_rejected(self, make_request):
        req = make_request()
        step = engine.next_pending_step(req.id)
        with pytest.raises(ValidationError):
            engine.approve_step(req.id, step.id, "   ")
        assert _db.session.get(RequestApproval, step.id).status == "pending"

    def test_deny_requires_comments(self, make_request):
        req = make_request()
        step = engine.next_pending_step(req.id)
        with pytest.raises(ValidationError):
            engine.deny_step(req.id, step.id, "")

        denied = engine.deny_step(req.id, step.id, "  Wrong agency  ")
        assert denied.status == "denied"
        assert denied.comments == "Wrong agency"
        with pytest.raises(PreconditionError):
            engine.deny_step(req.id, step.id, "again")

    def test_denied_step_blocks_completion(self, make_request, testing_ctx):
        req = make_request()
        engine.deny_step(req.id, engine.next_pending_step(req.id).id, "No")
        engine.auto_approve_all_pending(req.id, testing_ctx)

        assert engine.is_fully_approved(req.id) is False
        assert engine.can_complete(req.id) is False

    def test_approval_must_belong_to_request(self, make_request):
        first = make_request()
        second = make_request()
        foreign = engine.next_pending_step(second.id)
        with pytest.raises(NotFoundError):
            engine.get_approval(first.id, foreign.id)
        with pytest.raises(NotFoundError):
            engine.approve_step(first.id, "missing", "sig")


# ── Auto-approve ─────────────────────────────────────────────────────────────


class TestAutoApprove:
    def test_requires_test_mode(self, make_request, ctx):
        req = make_request()
        with pytest.raises(PreconditionError):
            engine.auto_approve_all_pending(req.id, ctx)
        with pytest.raises(PreconditionError):
            engine.auto_approve_all_pending(req.id, None)

    def test_disabled_by_deployment(self, app, make_request, testing_ctx, monkeypatch):
        req = make_request()
        monkeypatch.setitem(app.config, "TEST_MODE_ENABLED", False)
        with pytest.raises(PreconditionError):
            engine.auto_approve_all_pending(req.id, testing_ctx)

    def test_approves_everything_pending(self, make_request, testing_ctx):
        req = make_request()
        engine.approve_step(req.id, engine.next_pending_step(req.id).id, "Real signature")

        assert engine.auto_approve_all_pending(req.id, testing_ctx) == 3
        steps = _by_step(req.id)
        assert steps["user_signature"].signature_data == "Real signature"
        assert steps["security_admin_approval"].signature_data == engine.AUTO_SIGNATURE
        assert engine.next_pending_step(req.id) is None
        assert engine.is_fully_approved(req.id) is True
        assert engine.can_complete(req.id) is True

        assert engine.auto_approve_all_pending(req.id, testing_ctx) == 0

    def test_unknown_request(self, testing_ctx):
        with pytest.raises(NotFoundError):
            engine.auto_approve_all_pending("missing", testing_ctx)


# ── Completion ───────────────────────────────────────────────────────────────


class TestCompletion:
    def test_complete_fully_approved_request(self, make_request, testing_ctx):
        req = make_request()
        engine.auto_approve_all_pending(req.id, testing_ctx)

        done = engine.complete_request(req.id, "  Casey Closer ")

        assert done.status == "completed"
        assert done.completed_by == "Casey Closer"
        assert done.completed_at is not None
        assert engine.can_complete(req.id) is False
        with pytest.raises(PreconditionError):
            engine.complete_request(req.id, "Casey Closer")

    def test_name_required(self, make_request, testing_ctx):
        req = make_request()
        engine.auto_approve_all_pending(req.id, testing_ctx)
        with pytest.raises(ValidationError):
            engine.complete_request(req.id, " ")

    def test_pending_steps_block_completion(self, make_request):
        req = make_request()
        assert engine.can_complete(req.id) is False
        with pytest.raises(PreconditionError):
            engine.complete_request(req.id, "Casey Closer")

    def test_empty_approval_set_is_not_fully_approved(self, make_request):
        req = make_request()
        for row in list(req.approvals):
            req.approvals.remove(row)
        _db.session.commit()

        assert engine.list_approvals(req.id) == []
        assert engine.is_fully_approved(req.id) is False
        assert engine.can_complete(req.id) is False

    def test_unknown_request(self):
        assert engine.can_complete("missing") is False
        with pytest.raises(NotFoundError):
            engine.complete_request("missing", "Casey Closer")


class TestPermission:
    def test_auto_approve_permitted_follows_config(self, app, monkeypatch):
        assert engine.auto_approve_permitted() is True
        monkeypatch.setitem(app.config, "TEST_MODE_ENABLED", False)
        assert engine.auto_approve_permitted() is False

    def test_context_default_is_not_test_mode(self):
        assert SessionContext().test_mode is False
