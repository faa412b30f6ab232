# Overview: Pytest coverage for location isolation between admins.

"""
Location Isolation Tests

An admin only ever sees data of their own location. Rows that belong to
another location are reported as not found, never as forbidden, so their
existence is not revealed.
"""

import pytest

from assetman.models import AssignmentState, Location
from assetman.time_utils import today


@pytest.fixture
def hcm_data(admin_hcm, staff_hcm, laptop, make_assignment, db_session):
    assignment = make_assignment(laptop, staff_hcm, admin_hcm, state=AssignmentState.ACCEPTED)
    return {"asset": laptop, "user": staff_hcm, "assignment": assignment}


@pytest.fixture
def hn_headers(login, admin_hn):
    return login(admin_hn)


# =============================================================================
# LISTS
# =============================================================================


class TestListsAreScoped:

    @pytest.mark.parametrize("url", [
        "/api/assets",
        "/api/assignments",
        "/api/return-requests",
    ])
    def test_other_location_rows_not_listed(self, client, hcm_data, hn_headers, url):
        data = client.get(url, headers=hn_headers).get_json()["data"]
        assert data["items"] == []
        assert data["paginationMetadata"]["totalItems"] == 0

    def test_users_list_only_own_location(self, client, hcm_data, hn_headers, staff_hn):
        items = client.get("/api/users", headers=hn_headers).get_json()["data"]["items"]
        assert {u["username"] for u in items} == {"adminhn", "hoatt"}
        assert all(u["location"] == Location.HN.value for u in items)

    def test_available_assets_and_assignable_users(self, client, hcm_data, hn_headers, make_asset, staff_hn):
        hn_asset = make_asset("Hanoi laptop", location=Location.HN)

        assets = client.get("/api/assets/available", headers=hn_headers).get_json()["data"]
        assert [a["id"] for a in assets] == [hn_asset.id]

        users = client.get("/api/users/assignable", headers=hn_headers).get_json()["data"]
        assert hcm_data["user"].username not in {u["username"] for u in users}


# =============================================================================
# SINGLE ROWS
# =============================================================================


class TestSingleRowsAreHidden:

    def test_asset_details(self, client, hcm_data, hn_headers):
        response = client.get(f"/api/assets/{hcm_data['asset'].id}", headers=hn_headers)
        assert response.status_code == 404

    def test_asset_update_and_delete(self, client, hcm_data, hn_headers):
        asset_id = hcm_data["asset"].id
        assert client.put(f"/api/assets/{asset_id}", json={"name": "x"}, headers=hn_headers).status_code == 404
        assert client.delete(f"/api/assets/{asset_id}", headers=hn_headers).status_code == 404

    def test_user_by_staff_code(self, client, hcm_data, hn_headers):
        response = client.get(f"/api/users/{hcm_data['user'].staff_code}", headers=hn_headers)
        assert response.status_code == 404

    def test_assignment(self, client, hcm_data, hn_headers):
        assignment_id = hcm_data["assignment"].id
        assert client.get(f"/api/assignments/{assignment_id}", headers=hn_headers).status_code == 404
        assert client.delete(f"/api/assignments/{assignment_id}", headers=hn_headers).status_code == 404

    def test_return_request_for_other_location(self, client, hcm_data, hn_headers):
        response = client.post(
            "/api/return-requests",
            json={"assignmentId": hcm_data["assignment"].id},
            headers=hn_headers,
        )
        assert response.status_code == 404
        assert response.get_json()["message"] == "Assignment does not exist"

    def test_cannot_assign_to_user_of_other_location(self, client, hn_headers, make_asset, hcm_data):
        hn_asset = make_asset("Hanoi laptop", location=Location.HN)
        response = client.post(
            "/api/assignments",
            json={"assetId": hn_asset.id, "assigneeId": hcm_data["user"].id, "assignedDate": today().isoformat()},
            headers=hn_headers,
        )
        assert response.status_code == 400
        assert response.get_json()["errors"] == ["assigneeId: Assignee is not in your location"]
