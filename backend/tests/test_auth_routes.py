# Overview: Pytest coverage for login, logout, password change and route guards.

"""
Authentication & Authorization Tests

Verifies:
- login envelope and failure statuses
- 401 without a valid token, 403 for staff on admin routes
- first-login password change and session rotation
- the shared error envelope on bad input
"""

PASSWORD = "Password123!"


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestLogin:

    def test_login_envelope(self, client, admin_hcm):
        response = client.post("/api/auth/login", json={"username": "adminhcm", "password": PASSWORD})

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert body["message"] == "Login successfully"
        assert body["errors"] == []
        assert body["data"]["accessToken"]
        assert body["data"]["userInfo"]["username"] == "adminhcm"
        assert body["data"]["userInfo"]["type"] == "Admin"
        assert "passwordHash" not in body["data"]["userInfo"]

    def test_wrong_password_and_unknown_user_look_the_same(self, client, admin_hcm):
        wrong = client.post("/api/auth/login", json={"username": "adminhcm", "password": "nope"})
        unknown = client.post("/api/auth/login", json={"username": "ghost", "password": "nope"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json()["message"] == unknown.get_json()["message"]

    def test_disabled_user_forbidden(self, client, make_user):
        make_user("gone", is_active=False)
        response = client.post("/api/auth/login", json={"username": "gone", "password": PASSWORD})
        assert response.status_code == 403

    def test_missing_fields(self, client):
        response = client.post("/api/auth/login", json={})
        assert response.status_code == 400
        assert response.get_json()["message"] == "Validation failed"


class TestGuards:

    def test_no_token(self, client):
        response = client.get("/api/assets")
        assert response.status_code == 401
        assert response.get_json()["success"] is False

    def test_garbage_token(self, client):
        response = client.get("/api/assets", headers=bearer("not-a-real-token"))
        assert response.status_code == 401

    def test_staff_on_admin_routes(self, client, staff_headers):
        for method, url in [
            ("get", "/api/assets"),
            ("post", "/api/assets"),
            ("get", "/api/users"),
            ("get", "/api/assignments"),
            ("get", "/api/return-requests"),
            ("get", "/api/reports/assets"),
        ]:
            response = getattr(client, method)(url, headers=staff_headers, json={})
            assert response.status_code == 403, url
            assert response.get_json()["message"] == "You do not have permission to perform this action"

    def test_staff_allowed_on_own_routes(self, client, login, staff_hcm):
        headers = login(staff_hcm)
        assert client.get("/api/assignments/my", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 200

    def test_bad_filter_date_is_400(self, client, admin_headers):
        response = client.get("/api/assignments?date=not-a-date", headers=admin_headers)
        assert response.status_code == 400
        assert response.get_json()["message"] == "Invalid date format for filtering"

    def test_non_object_body_is_400(self, client, admin_headers):
        for url in ["/api/assets", "/api/assignments", "/api/users", "/api/return-requests", "/api/categories"]:
            response = client.post(url, json=[1], headers=admin_headers)
            assert response.status_code == 400, url
            assert response.get_json()["message"] == "Request body must be a JSON object"

    def test_list_envelope(self, client, admin_headers, laptop):
        body = client.get("/api/assets?pageSize=2", headers=admin_headers).get_json()
        assert body["success"] is True
        assert [a["code"] for a in body["data"]["items"]] == [laptop.code]
        assert body["data"]["paginationMetadata"] == {
            "pageSize": 2,
            "currentPage": 1,
            "totalItems": 1,
            "totalPages": 1,
            "hasNextPage": False,
            "hasPreviousPage": False,
        }


class TestPasswordChange:

    def test_first_login_change_without_old_password(self, client, make_user, token_for):
        make_user("newbie", is_password_updated=False)
        old_token = token_for("newbie")

        response = client.post(
            "/api/auth/change-password",
            json={"newPassword": "Fresh#Pass1"},
            headers=bearer(old_token),
        )

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["userInfo"]["isPasswordUpdated"] is True
        # Old session is gone, the new one works
        assert client.get("/api/auth/me", headers=bearer(old_token)).status_code == 401
        assert client.get("/api/auth/me", headers=bearer(data["accessToken"])).status_code == 200
        assert token_for("newbie", "Fresh#Pass1")

    def test_old_password_required_after_first_change(self, client, login, staff_hcm):
        response = client.post(
            "/api/auth/change-password",
            json={"oldPassword": "Wrong#Pass1", "newPassword": "Fresh#Pass1"},
            headers=login(staff_hcm),
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "Password is incorrect"

    def test_same_password_rejected(self, client, login, staff_hcm):
        response = client.post(
            "/api/auth/change-password",
            json={"oldPassword": PASSWORD, "newPassword": PASSWORD},
            headers=login(staff_hcm),
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "New password must be different from the old password"

    def test_weak_password_rejected(self, client, login, staff_hcm):
        response = client.post(
            "/api/auth/change-password",
            json={"oldPassword": PASSWORD, "newPassword": "short"},
            headers=login(staff_hcm),
        )
        assert response.status_code == 400


class TestLogout:

    def test_logout_revokes_token(self, client, login, staff_hcm):
        headers = login(staff_hcm)

        response = client.post("/api/auth/logout", headers=headers)
        assert response.status_code == 200

        assert client.get("/api/auth/me", headers=headers).status_code == 401
