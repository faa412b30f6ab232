# Overview: Pytest coverage for asset and category management.

from datetime import timedelta

import pytest

from assetman.models import AssetState, AssignmentState, Location, ReturnRequest, ReturnRequestState
from assetman.services import asset_service, category_service
from assetman.services.session_service import CallerContext
from assetman.time_utils import today, utcnow
from assetman.validation import ConflictError, FieldValidationError, NotFoundError, StateConflictError


def asset_payload(category, **overrides) -> dict:
    payload = {
        "name": "Laptop HP Probook 450 G1",
        "specification": "Intel Core i5, 8GB RAM",
        "categoryId": category.id,
        "installedDate": "2024-03-01",
        "state": "Available",
    }
    payload.update(overrides)
    return payload


# =============================================================================
# ASSETS
# =============================================================================


class TestCreateAsset:

    def test_created_in_admin_location(self, admin_hn, laptop_category):
        asset = asset_service.create_asset(CallerContext.from_user(admin_hn), asset_payload(laptop_category))
        assert asset.location == Location.HN
        assert asset.state == AssetState.AVAILABLE
        assert asset.code == "LA000001"

    def test_not_available_allowed(self, admin_caller, laptop_category):
        asset = asset_service.create_asset(admin_caller, asset_payload(laptop_category, state="NotAvailable"))
        assert asset.state == AssetState.NOT_AVAILABLE

    @pytest.mark.parametrize("state", ["Assigned", "Recycled", "WaitingForRecycling", "Broken"])
    def test_other_states_rejected(self, admin_caller, laptop_category, state):
        with pytest.raises(FieldValidationError) as exc:
            asset_service.create_asset(admin_caller, asset_payload(laptop_category, state=state))
        assert exc.value.fields == {"state"}

    def test_future_installed_date(self, admin_caller, laptop_category, tomorrow):
        with pytest.raises(FieldValidationError) as exc:
            asset_service.create_asset(
                admin_caller, asset_payload(laptop_category, installedDate=tomorrow.isoformat())
            )
        assert exc.value.messages() == ["Installed date cannot be in the future"]

    def test_missing_fields_reported_together(self, admin_caller):
        with pytest.raises(FieldValidationError) as exc:
            asset_service.create_asset(admin_caller, {"name": "  "})
        assert exc.value.fields == {"name", "specification", "categoryId", "installedDate"}

    def test_unknown_category(self, admin_caller, laptop_category):
        with pytest.raises(FieldValidationError) as exc:
            asset_service.create_asset(admin_caller, asset_payload(laptop_category, categoryId=9999))
        assert exc.value.messages() == ["Category not found"]


class TestUpdateAsset:

    def test_partial_update(self, admin_caller, laptop):
        asset_service.update_asset(admin_caller, laptop.id, {"name": "Renamed", "state": "WaitingForRecycling"})
        assert laptop.name == "Renamed"
        assert laptop.state == AssetState.WAITING_FOR_RECYCLING
        assert laptop.specification == "Core i5, 8GB RAM"

    def test_category_change_keeps_code(self, admin_caller, laptop, monitor_category):
        code = laptop.code
        asset_service.update_asset(admin_caller, laptop.id, {"categoryId": monitor_category.id})
        assert laptop.category_id == monitor_category.id
        assert laptop.category.name == "Monitor"
        assert laptop.code == code

    def test_unknown_category_on_update(self, admin_caller, laptop, laptop_category):
        with pytest.raises(FieldValidationError) as exc:
            asset_service.update_asset(admin_caller, laptop.id, {"categoryId": 9999})
        assert exc.value.messages() == ["Category not found"]
        assert laptop.category_id == laptop_category.id

    def test_assigned_asset_is_locked(self, admin_caller, make_asset):
        busy = make_asset(state=AssetState.ASSIGNED)
        with pytest.raises(StateConflictError):
            asset_service.update_asset(admin_caller, busy.id, {"name": "New"})

    def test_cannot_set_assigned_by_hand(self, admin_caller, laptop):
        with pytest.raises(FieldValidationError):
            asset_service.update_asset(admin_caller, laptop.id, {"state": "Assigned"})
        assert laptop.state == AssetState.AVAILABLE

    def test_other_location_not_found(self, admin_hn, laptop):
        with pytest.raises(NotFoundError):
            asset_service.update_asset(CallerContext.from_user(admin_hn), laptop.id, {"name": "x"})


class TestDeleteAsset:

    def test_soft_delete_hides_asset(self, admin_caller, laptop):
        asset_service.delete_asset(admin_caller, laptop.id)
        assert laptop.is_deleted is True
        with pytest.raises(NotFoundError):
            asset_service.get_asset(admin_caller, laptop.id)

    def test_blocked_by_history(self, admin_caller, admin_hcm, staff_hcm, laptop, make_assignment):
        make_assignment(laptop, staff_hcm, admin_hcm, state=AssignmentState.RETURNED)
        with pytest.raises(StateConflictError):
            asset_service.delete_asset(admin_caller, laptop.id)
        assert laptop.is_deleted is False


class TestAssetDetails:

    def test_history_newest_first_without_declined(
        self, admin_caller, admin_hcm, staff_hcm, staff_hcm_2, laptop, make_assignment, db_session
    ):
        old = make_assignment(
            laptop, staff_hcm, admin_hcm, state=AssignmentState.RETURNED, assigned_date=today() - timedelta(days=30)
        )
        make_assignment(
            laptop, staff_hcm_2, admin_hcm, state=AssignmentState.DECLINED, assigned_date=today() - timedelta(days=20)
        )
        current = make_assignment(laptop, staff_hcm_2, admin_hcm, state=AssignmentState.ACCEPTED)

        returned = ReturnRequest(
            assignment_id=old.id,
            requester_id=staff_hcm.id,
            acceptor_id=admin_hcm.id,
            state=ReturnRequestState.COMPLETED,
            returned_date=today() - timedelta(days=10),
        )
        returned.mark_created(staff_hcm.id, utcnow())
        db_session.add(returned)
        db_session.commit()

        details = asset_service.get_asset_details(admin_caller, laptop.id)

        assert details["code"] == laptop.code
        history = details["assignments"]
        assert [h["assignmentId"] for h in history] == [current.id, old.id]
        assert history[0]["returnedDate"] is None
        assert history[1]["returnedDate"] == (today() - timedelta(days=10)).isoformat()
        assert history[1]["assignedTo"] == "binhnv"
        assert history[1]["assignedBy"] == "adminhcm"


class TestAvailableAssets:

    def test_only_available_in_location(self, admin_caller, make_asset):
        free = make_asset("Free")
        make_asset("Busy", state=AssetState.ASSIGNED)
        make_asset("Far", location=Location.HN)
        assert [a.id for a in asset_service.list_available_assets(admin_caller)] == [free.id]


# =============================================================================
# CATEGORIES
# =============================================================================


class TestCategories:

    def test_create_uppercases_prefix(self, admin_caller):
        category = category_service.create_category(admin_caller, {"name": "Mouse", "prefix": "ms"})
        assert category.prefix == "MS"

    def test_duplicate_name_case_insensitive(self, admin_caller, laptop_category):
        with pytest.raises(ConflictError) as exc:
            category_service.create_category(admin_caller, {"name": "LAPTOP", "prefix": "LP"})
        assert str(exc.value) == "Category is already existed. Please enter a different category"

    def test_duplicate_prefix(self, admin_caller, laptop_category):
        with pytest.raises(ConflictError) as exc:
            category_service.create_category(admin_caller, {"name": "Lamp", "prefix": "la"})
        assert str(exc.value) == "Prefix is already existed. Please enter a different prefix"

    @pytest.mark.parametrize("prefix", ["L", "LAP", "L1", "  "])
    def test_prefix_must_be_two_letters(self, admin_caller, prefix):
        with pytest.raises(FieldValidationError) as exc:
            category_service.create_category(admin_caller, {"name": "Lamp", "prefix": prefix})
        assert exc.value.fields == {"prefix"}

    def test_routes(self, client, login, admin_hcm, laptop_category):
        headers = login(admin_hcm)

        response = client.post("/api/categories", json={"name": "Laptop", "prefix": "XX"}, headers=headers)
        assert response.status_code == 409
        assert response.get_json()["success"] is False

        response = client.post("/api/categories", json={"name": "Tablet", "prefix": "tb"}, headers=headers)
        assert response.status_code == 201
        assert response.get_json()["data"]["prefix"] == "TB"

        names = [c["name"] for c in client.get("/api/categories", headers=headers).get_json()["data"]]
        assert set(names) == {"Laptop", "Tablet"}
