# Overview: Pytest coverage for dashboard figures and the asset report.

import csv
import io
from datetime import datetime

from assetman.models import AssetState, AssignmentState, Location
from assetman.services import dashboard_service, report_service


class TestDateRange:

    def test_known_ranges(self):
        now = datetime(2024, 3, 31, 12, 0)
        assert dashboard_service.date_range("7d", now)[0] == datetime(2024, 3, 24, 12, 0)
        assert dashboard_service.date_range("1y", now)[0] == datetime(2023, 3, 31, 12, 0)

    def test_unknown_range_uses_default(self):
        now = datetime(2024, 3, 31, 12, 0)
        assert dashboard_service.date_range("forever", now) == dashboard_service.date_range("30d", now)


class TestDashboard:

    def test_stats_for_one_location(self, admin_hcm, staff_hcm, staff_hn, make_asset, make_assignment):
        assigned = make_asset("A", state=AssetState.ASSIGNED)
        make_asset("B")
        make_asset("C", state=AssetState.NOT_AVAILABLE)
        make_asset("Far", location=Location.HN)
        make_assignment(assigned, staff_hcm, admin_hcm, state=AssignmentState.ACCEPTED)

        stats = dashboard_service.get_stats(Location.HCM)

        assert stats["totalAssets"] == 3
        assert stats["availableAssets"] == 1
        assert stats["assignedAssets"] == 1
        assert stats["notAvailableAssets"] == 1
        assert stats["totalUsers"] == 2
        assert stats["activeAssignments"] == 1
        assert stats["pendingReturns"] == 0

    def test_breakdowns(self, make_asset, monitor_category):
        make_asset("A")
        make_asset("B")
        make_asset("Screen", category=monitor_category, state=AssetState.RECYCLED)
        make_asset("Far", location=Location.DN)

        by_category = dashboard_service.assets_by_category(Location.HCM)
        assert [(c["categoryName"], c["count"]) for c in by_category] == [("Laptop", 2), ("Monitor", 1)]

        by_state = dashboard_service.assets_by_state(Location.HCM)
        assert {s["state"]: s["count"] for s in by_state} == {"Available": 2, "Recycled": 1}

        by_location = dashboard_service.assets_by_location()
        assert [(loc["location"], loc["count"]) for loc in by_location] == [("HCM", 3), ("DN", 1)]

    def test_monthly_buckets_cover_range(self):
        buckets = dashboard_service.monthly_stats(Location.HCM, "90d", now=datetime(2024, 3, 15))
        assert [(b["month"], b["year"]) for b in buckets] == [
            ("Dec", 2023), ("Jan", 2024), ("Feb", 2024), ("Mar", 2024)
        ]
        assert all(b["assignments"] == 0 and b["returns"] == 0 for b in buckets)

    def test_routes_default_to_caller_location(self, client, login, admin_hn, make_asset):
        make_asset("HCM asset")
        headers = login(admin_hn)

        own = client.get("/api/dashboard/stats", headers=headers).get_json()["data"]
        assert own["totalAssets"] == 0

        other = client.get("/api/dashboard/stats?location=HCM", headers=headers).get_json()["data"]
        assert other["totalAssets"] == 1

    def test_staff_forbidden(self, client, login, staff_hcm):
        response = client.get("/api/dashboard/stats", headers=login(staff_hcm))
        assert response.status_code == 403


class TestAssetReport:

    def test_counts_include_empty_categories(self, make_asset, monitor_category, make_category):
        make_category("Personal Computer", "PC")
        make_asset("A")
        make_asset("B", state=AssetState.ASSIGNED)
        make_asset("C", state=AssetState.WAITING_FOR_RECYCLING)
        make_asset("Screen", category=monitor_category, state=AssetState.NOT_AVAILABLE)
        make_asset("Far", location=Location.HN)

        rows = report_service.asset_report(Location.HCM)

        assert [r["category"] for r in rows] == ["Laptop", "Monitor", "Personal Computer"]
        laptop_row = rows[0]
        assert laptop_row == {
            "category": "Laptop",
            "total": 3,
            "assigned": 1,
            "available": 1,
            "notAvailable": 0,
            "waitingForRecycling": 1,
            "recycled": 0,
        }
        assert rows[2]["total"] == 0

    def test_sort_by_count_descending(self, make_asset, monitor_category):
        make_asset("Screen 1", category=monitor_category)
        make_asset("Screen 2", category=monitor_category)
        make_asset("A")

        rows = report_service.asset_report(Location.HCM, "total", "desc")
        assert [r["category"] for r in rows] == ["Monitor", "Laptop"]

        rows = report_service.asset_report(Location.HCM, "category", "desc")
        assert [r["category"] for r in rows] == ["Monitor", "Laptop"]

    def test_unknown_sort_falls_back(self, laptop_category, monitor_category):
        rows = report_service.asset_report(Location.HCM, "colour", "desc")
        assert [r["category"] for r in rows] == ["Laptop", "Monitor"]

    def test_csv_export(self, client, login, admin_hcm, laptop):
        response = client.get("/api/reports/assets/export", headers=login(admin_hcm))

        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert response.headers["Content-Disposition"].startswith("attachment; filename=asset-report-")

        rows = list(csv.reader(io.StringIO(response.get_data(as_text=True))))
        assert rows[0] == [
            "Category", "Total", "Assigned", "Available",
            "Not available", "Waiting for recycling", "Recycled",
        ]
        assert rows[1] == ["Laptop", "1", "0", "1", "0", "0", "0"]
