# Overview: Pytest coverage for asset code generation.

import pytest

from assetman.models import Asset
from assetman.services import asset_code, asset_service
from assetman.validation import ConflictError


class TestNextCode:

    def test_first_code_for_new_prefix(self):
        assert asset_code.next_code("LA", None) == "LA000001"

    def test_increments_last_code(self):
        assert asset_code.next_code("LA", Asset(code="LA000041")) == "LA000042"

    def test_last_six_digit_code(self):
        assert asset_code.next_code("LA", Asset(code="LA999998")) == "LA999999"

    def test_exhausted_prefix_conflicts(self):
        with pytest.raises(ConflictError) as exc:
            asset_code.next_code("LA", Asset(code="LA999999"))
        assert str(exc.value) == "Maximum number of asset codes reached for prefix LA"

    def test_non_numeric_suffix_restarts(self):
        assert asset_code.next_code("LA", Asset(code="LA-X12")) == "LA000001"


class TestGenerateCode:

    def test_uses_highest_existing_code(self, make_asset):
        make_asset(code="LA000003")
        make_asset(code="LA000010")
        make_asset(code="LA000007")
        assert asset_code.generate_code("LA") == "LA000011"

    def test_prefixes_are_independent(self, make_asset, monitor_category):
        make_asset(code="LA000005")
        make_asset(code="MO000002", category=monitor_category)
        assert asset_code.generate_code("MO") == "MO000003"
        assert asset_code.generate_code("PC") == "PC000001"

    def test_deleted_codes_are_not_reused(self, admin_caller, make_asset):
        asset = make_asset(code="LA000009")
        asset_service.delete_asset(admin_caller, asset.id)
        assert asset_code.generate_code("LA") == "LA000010"

    def test_created_assets_get_consecutive_codes(self, admin_caller, laptop_category):
        payload = {
            "name": "Laptop",
            "specification": "i5",
            "categoryId": laptop_category.id,
            "installedDate": "2024-01-02",
        }
        first = asset_service.create_asset(admin_caller, payload)
        second = asset_service.create_asset(admin_caller, payload)
        assert (first.code, second.code) == ("LA000001", "LA000002")

    def test_create_after_last_code_is_409(self, client, admin_headers, make_asset, laptop_category):
        make_asset(code="LA999999")
        payload = {
            "name": "Laptop",
            "specification": "i5",
            "categoryId": laptop_category.id,
            "installedDate": "2024-01-02",
        }

        for _ in range(2):
            response = client.post("/api/assets", json=payload, headers=admin_headers)
            assert response.status_code == 409
            assert response.get_json()["message"] == "Maximum number of asset codes reached for prefix LA"
