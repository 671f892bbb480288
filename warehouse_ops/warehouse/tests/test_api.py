"""
API tests for the stock control endpoints.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from products.models import Sku
from warehouse.models import BinLocation, InventoryTransaction, InventoryUnit


class StockControlAPITest(APITestCase):
    base = "/api/v1/stock-control"

    def setUp(self):
        User = get_user_model()
        self.controller = User.objects.create_user(username="controller", password="testpass123", role="stock_controller")
        self.supervisor = User.objects.create_user(username="supervisor", password="testpass123", role="supervisor")
        self.picker = User.objects.create_user(username="picker", password="testpass123", role="picker")

        self.sku = Sku.objects.create(sku="SKU-001", name="Widget", unit_price=Decimal("2.00"))
        self.bin_a = BinLocation.objects.create(bin_id="A-01-01", zone="A", aisle="01", shelf="01")
        self.bin_b = BinLocation.objects.create(bin_id="B-01-01", zone="B", aisle="01", shelf="01")
        InventoryUnit.objects.create(sku=self.sku, bin_location=self.bin_a, quantity=8)

    def test_dashboard(self):
        self.client.force_authenticate(self.controller)
        response = self.client.get(f"{self.base}/dashboard")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["total_skus"], 1)
        self.assertEqual(response.data["low_stock_items"], 1)

    def test_picker_is_forbidden(self):
        self.client.force_authenticate(self.picker)
        response = self.client.get(f"{self.base}/dashboard")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["code"], "FORBIDDEN")

    def test_adjust(self):
        self.client.force_authenticate(self.controller)
        response = self.client.post(
            f"{self.base}/adjust",
            {"sku": "SKU-001", "bin_location": "A-01-01", "quantity": -3, "reason": "Damaged"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["quantity_after"], 5)

    def test_adjust_below_zero_is_conflict(self):
        self.client.force_authenticate(self.controller)
        response = self.client.post(
            f"{self.base}/adjust",
            {"sku": "SKU-001", "bin_location": "A-01-01", "quantity": -9, "reason": "Lost"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertIn("error", response.data)
        self.assertIn("code", response.data)

    def test_transfer_and_history(self):
        self.client.force_authenticate(self.controller)
        response = self.client.post(
            f"{self.base}/transfer",
            {"sku": "SKU-001", "from_bin": "A-01-01", "to_bin": "B-01-01", "quantity": 2, "reason": "Replenish"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get(f"{self.base}/transactions", {"sku": "SKU-001"})
        self.assertEqual(response.data["count"], 2)

        response = self.client.get(f"{self.base}/inventory/SKU-001")
        self.assertEqual(response.data["total_quantity"], 8)
        self.assertEqual(len(response.data["inventory"]), 2)

    def test_unknown_sku_detail_is_not_found(self):
        self.client.force_authenticate(self.controller)
        response = self.client.get(f"{self.base}/inventory/NOPE")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_reconcile_requires_supervisor(self):
        payload = {
            "discrepancies": [
                {"sku": "SKU-001", "bin_location": "A-01-01", "system_quantity": 8, "actual_quantity": 6}
            ]
        }
        self.client.force_authenticate(self.controller)
        self.assertEqual(
            self.client.post(f"{self.base}/reconcile", payload, format="json").status_code,
            status.HTTP_403_FORBIDDEN,
        )

        self.client.force_authenticate(self.supervisor)
        response = self.client.post(f"{self.base}/reconcile", payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["reconciled"], 1)
        self.assertEqual(InventoryTransaction.objects.filter(type="ADJUSTMENT").count(), 1)

    def test_low_stock_threshold_must_be_integer(self):
        self.client.force_authenticate(self.controller)
        response = self.client.get(f"{self.base}/reports/low-stock", {"threshold": "ten"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_malformed_dates_are_bad_requests(self):
        self.client.force_authenticate(self.controller)
        for path in ("transactions", "reports/movements"):
            with self.subTest(path=path):
                response = self.client.get(f"{self.base}/{path}", {"start_date": "not-a-date"})
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(response.data["code"], "VALIDATION_ERROR")

    def test_reversed_date_range_is_rejected(self):
        self.client.force_authenticate(self.controller)
        response = self.client.get(
            f"{self.base}/reports/movements", {"start_date": "2024-02-01T00:00:00Z", "end_date": "2024-01-01T00:00:00Z"}
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_date_filters_apply(self):
        self.client.force_authenticate(self.controller)
        self.client.post(
            f"{self.base}/adjust",
            {"sku": "SKU-001", "bin_location": "A-01-01", "quantity": 1, "reason": "Found"},
            format="json",
        )
        response = self.client.get(f"{self.base}/transactions", {"end_date": "2000-01-01T00:00:00Z"})
        self.assertEqual(response.data["count"], 0)
        response = self.client.get(f"{self.base}/transactions", {"start_date": "2000-01-01T00:00:00Z"})
        self.assertEqual(response.data["count"], 1)
