"""
Tests: HTTP API for the session, requests and role selections.

Requests go through the Flask test client; the session cookie carries the
operator's name between calls exactly as it does for the browser.
"""

import pytest

SESSION_URL = "/api/v1/session"
REQUESTS_URL = "/api/v1/requests"


def _identify(client, name="Pat Contact"):
    res = client.put(SESSION_URL, json={"currentUser": name})
    assert res.status_code == 200
    return res


def _create(client, form):
    res = client.post(REQUESTS_URL, json=form)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ── Session ──────────────────────────────────────────────────────────────────


class TestSessionAPI:
    def test_identify_persists_in_cookie(self, client):
        assert client.get(SESSION_URL).get_json()["current_user"] is None

        _identify(client)
        body = client.get(SESSION_URL).get_json()
        assert body["current_user"] == "Pat Contact"
        assert body["test_mode"] is False
        assert body["test_mode_available"] is True

    def test_new_request_turns_test_mode_off(self, client):
        client.put(SESSION_URL, json={"test_mode": True})
        assert client.get(SESSION_URL).get_json()["test_mode"] is True

        res = client.post(f"{SESSION_URL}/new-request")
        assert res.status_code == 200
        assert res.get_json()["test_mode"] is False

    def test_string_false_turns_test_mode_off(self, client):
        client.put(SESSION_URL, json={"test_mode": True})

        res = client.put(SESSION_URL, json={"test_mode": "false"})
        assert res.status_code == 200
        assert res.get_json()["test_mode"] is False
        assert client.get(SESSION_URL).get_json()["test_mode"] is False

    def test_test_mode_refused_when_disabled(self, app, client, monkeypatch):
        monkeypatch.setitem(app.config, "TEST_MODE_ENABLED", False)
        res = client.put(SESSION_URL, json={"testMode": True})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_PRECONDITION"

    def test_sample_data_requires_test_mode(self, client):
        _identify(client)
        assert client.get(f"{SESSION_URL}/test-data").status_code == 409

        client.put(SESSION_URL, json={"test_mode": True})
        res = client.get(f"{SESSION_URL}/test-data?area=elm")
        assert res.status_code == 200
        body = res.get_json()
        assert body["security_area"] == "elm"
        assert body["submitter_email"] == "pat.contact@state.mn.us"


# ── Requests ─────────────────────────────────────────────────────────────────


class TestRequestsAPI:
    def test_create_requires_identity(self, client, make_form):
        res = client.post(REQUESTS_URL, json=make_form())
        assert res.status_code == 422
        assert res.get_json()["details"] == {"current_user": "required"}

    def test_x_user_header_identifies(self, client, make_form):
        res = client.post(REQUESTS_URL, json=make_form(), headers={"X-User": "Header User"})
        assert res.status_code == 201
        assert res.get_json()["request"]["poc_user"] == "Header User"

    def test_create_returns_next_page(self, client, make_form):
        _identify(client)
        body = _create(client, make_form("hr_payroll"))

        assert body["request"]["status"] == "pending"
        assert body["next"] == {
            "name": "hr_payroll_roles",
            "path": "/hr-payroll-roles",
            "request_id": body["request"]["id"],
        }

    def test_create_accepts_camel_case(self, client, make_form):
        _identify(client)
        form = {
            "startDate": make_form()["start_date"],
            "employeeName": "Camel Case",
            "employeeId": "42",
            "email": "camel.case@state.mn.us",
            "agencyName": "Revenue",
            "agencyCode": "E81",
            "submitterName": "Sam",
            "submitterEmail": "sam@state.mn.us",
            "supervisorName": "Sue",
            "supervisorUsername": "sue.supervisor",
            "securityAdminName": "Ada",
            "securityAdminUsername": "ada.admin",
            "securityArea": "epm_data_warehouse",
            "selectionOption": "select",
        }
        body = _create(client, form)
        assert body["request"]["employee_name"] == "Camel Case"
        assert body["next"]["path"] == "/epm-dwh-roles"

    def test_validation_errors(self, client, make_form):
        _identify(client)
        res = client.post(REQUESTS_URL, json=make_form(email="not-an-email"))
        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_CONSTRAINT"
        assert body["error"] == "Please fill in all required fields"
        assert "email" in body["details"]

    def test_malformed_json(self, client):
        res = client.post(REQUESTS_URL, data="{not json", content_type="application/json")
        assert res.status_code == 400

    def test_non_json_body(self, client):
        res = client.post(REQUESTS_URL, data="a=b", content_type="text/plain")
        assert res.status_code == 415

    def test_list_filter_and_options(self, client, make_form):
        _identify(client)
        _create(client, make_form(employee_name="Alex Able"))
        _create(client, make_form(employee_name="Blake Baker"))

        body = client.get(REQUESTS_URL).get_json()
        assert body["total"] == 2
        assert [o["value"] for o in body["employee_options"]] == ["Alex Able", "Blake Baker"]

        filtered = client.get(REQUESTS_URL, query_string={"employee_name": "Alex Able"}).get_json()
        assert [r["employee_name"] for r in filtered["items"]] == ["Alex Able"]
        assert filtered["items"][0]["badge"]["label"] == "Pending"

    def test_details_and_unknown_id(self, client, make_form):
        _identify(client)
        created = _create(client, make_form())
        request_id = created["request"]["id"]

        body = client.get(f"{REQUESTS_URL}/{request_id}").get_json()
        assert body["request"]["id"] == request_id
        assert len(body["approvals"]) == 4
        assert body["can_complete"] is False

        res = client.get(f"{REQUESTS_URL}/does-not-exist")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_edit_round_trip(self, client, make_form):
        _identify(client)
        request_id = _create(client, make_form())["request"]["id"]

        form = client.get(f"{REQUESTS_URL}/{request_id}/edit").get_json()
        assert form["elm_key_admin_username"] == "kim.keyadmin"

        form["security_area"] = "accounting_procurement"
        form["accounting_director"] = "Dana Director"
        form["accounting_director_username"] = "dana.director"
        res = client.put(f"{REQUESTS_URL}/{request_id}", json=form)

        assert res.status_code == 200
        assert res.get_json()["next"]["path"] == "/select-roles"
        steps = [a["step"] for a in client.get(f"{REQUESTS_URL}/{request_id}").get_json()["approvals"]]
        assert "accounting_director_approval" in steps
        assert "elm_admin_approval" not in steps

    def test_delete_is_idempotent(self, client, make_form):
        _identify(client)
        request_id = _create(client, make_form())["request"]["id"]

        first = client.delete(f"{REQUESTS_URL}/{request_id}")
        second = client.delete(f"{REQUESTS_URL}/{request_id}")
        assert first.get_json() == {"deleted": True, "id": request_id}
        assert second.status_code == 200
        assert second.get_json()["deleted"] is False


# ── Role selections ──────────────────────────────────────────────────────────


class TestRolesAPI:
    @pytest.fixture()
    def request_id(self, client, make_form):
        _identify(client)
        return _create(client, make_form("elm"))["request"]["id"]

    def test_empty_before_save(self, client, request_id):
        body = client.get(f"{REQUESTS_URL}/{request_id}/roles/elm").get_json()
        assert body == {"area_type": "elm", "exists": False, "form": None}

    def test_no_role_selected(self, client, request_id):
        res = client.put(f"{REQUESTS_URL}/{request_id}/roles/elm",
                         json={"supervisorApproval": True, "learningAdministrator": False})
        assert res.status_code == 422
        assert res.get_json()["error"] == "Please select at least one role."

    def test_save_and_reload(self, client, request_id):
        res = client.put(f"{REQUESTS_URL}/{request_id}/roles/elm",
                         json={"supervisorApproval": True, "learningAdministrator": True})
        assert res.status_code == 200
        body = res.get_json()
        assert body["selection"]["elm_system_administrator"] is True
        assert body["next"]["path"] == "/success"
        assert len(body["notices"]) == 1

        reloaded = client.get(f"{REQUESTS_URL}/{request_id}/roles/elm").get_json()
        assert reloaded["exists"] is True
        assert reloaded["form"]["learningAdministrator"] is True

    def test_unknown_area_and_request(self, client, request_id):
        assert client.get(f"{REQUESTS_URL}/{request_id}/roles/mainframe").status_code == 422
        res = client.put(f"{REQUESTS_URL}/missing/roles/elm", json={"learningAdministrator": True})
        assert res.status_code == 404

    def test_copy_without_source(self, client, request_id):
        res = client.post(f"{REQUESTS_URL}/{request_id}/roles/copy",
                          json={"copyUserEmployeeId": "000000"})
        assert res.status_code == 200
        assert res.get_json() == {"copied": False, "selection": None}
