"""
Tests for stock control operations.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from core.exceptions import ConflictException, NotFoundException, ValidationException
from products.models import Sku
from warehouse.models import BinLocation, InventoryTransaction, InventoryUnit, StockCount
from warehouse.services.stock_control_service import StockControlService


class StockControlTestCase(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="controller", password="testpass123", role="stock_controller"
        )
        self.service = StockControlService()
        self.sku = Sku.objects.create(sku="SKU-001", name="Widget", unit_price=Decimal("2.50"))
        self.bin_a = BinLocation.objects.create(bin_id="A-01-01", zone="A", aisle="01", shelf="01")
        self.bin_b = BinLocation.objects.create(bin_id="B-01-01", zone="B", aisle="01", shelf="01")
        self.unit = InventoryUnit.objects.create(sku=self.sku, bin_location=self.bin_a, quantity=20, reserved=15)


class AdjustInventoryTest(StockControlTestCase):
    def test_positive_adjustment_writes_transaction(self):
        result = self.service.adjust_inventory("SKU-001", "A-01-01", 5, "Found extra", self.user)

        self.unit.refresh_from_db()
        self.assertEqual(self.unit.quantity, 25)
        self.assertEqual(result["quantity_before"], 20)
        self.assertEqual(result["quantity_after"], 25)
        txn = InventoryTransaction.objects.get(transaction_id=result["transaction_id"])
        self.assertEqual(txn.type, InventoryTransaction.Type.ADJUSTMENT)
        self.assertEqual(txn.quantity, 5)
        self.assertEqual(txn.reason, "Found extra")

    def test_negative_adjustment_caps_reserved(self):
        self.service.adjust_inventory("SKU-001", "A-01-01", -10, "Damaged", self.user)

        self.unit.refresh_from_db()
        self.assertEqual(self.unit.quantity, 10)
        self.assertEqual(self.unit.reserved, 10)

    def test_adjustment_below_zero_is_rejected_without_writes(self):
        with self.assertRaises(ConflictException):
            self.service.adjust_inventory("SKU-001", "A-01-01", -21, "Too much", self.user)

        self.unit.refresh_from_db()
        self.assertEqual(self.unit.quantity, 20)
        self.assertFalse(InventoryTransaction.objects.exists())

    def test_missing_unit_is_not_found(self):
        with self.assertRaises(NotFoundException):
            self.service.adjust_inventory("SKU-001", "B-01-01", 1, "Nothing here", self.user)

    def test_zero_adjustment_is_rejected(self):
        with self.assertRaises(ValidationException):
            self.service.adjust_inventory("SKU-001", "A-01-01", 0, "No-op", self.user)


class TransferStockTest(StockControlTestCase):
    def test_transfer_creates_destination_and_paired_transactions(self):
        result = self.service.transfer_stock("SKU-001", "A-01-01", "B-01-01", 5, "", self.user)

        self.unit.refresh_from_db()
        destination = InventoryUnit.objects.get(sku=self.sku, bin_location=self.bin_b)
        self.assertEqual(self.unit.quantity, 15)
        self.assertEqual(self.unit.reserved, 15)
        self.assertEqual(destination.quantity, 5)
        self.assertEqual(destination.reserved, 0)

        txns = InventoryTransaction.objects.filter(transaction_id__in=result["transaction_ids"])
        self.assertEqual(
            sorted(txns.values_list("type", "quantity")),
            [("DEDUCTION", -5), ("RECEIPT", 5)],
        )

    def test_transfer_more_than_available_is_rejected(self):
        with self.assertRaises(ConflictException):
            self.service.transfer_stock("SKU-001", "A-01-01", "B-01-01", 10, "", self.user)

        self.unit.refresh_from_db()
        self.assertEqual(self.unit.quantity, 20)
        self.assertFalse(InventoryUnit.objects.filter(bin_location=self.bin_b).exists())
        self.assertFalse(InventoryTransaction.objects.exists())

    def test_transfer_to_same_bin_is_rejected(self):
        with self.assertRaises(ValidationException):
            self.service.transfer_stock("SKU-001", "A-01-01", "A-01-01", 1, "", self.user)

    def test_transfer_to_unknown_bin_is_not_found(self):
        with self.assertRaises(NotFoundException):
            self.service.transfer_stock("SKU-001", "A-01-01", "Z-99-99", 1, "", self.user)


class ReconcileTest(StockControlTestCase):
    def test_failure_keeps_earlier_adjustments(self):
        other = Sku.objects.create(sku="SKU-002", name="Gadget")
        InventoryUnit.objects.create(sku=other, bin_location=self.bin_b, quantity=3)

        discrepancies = [
            {"sku": "SKU-001", "bin_location": "A-01-01", "system_quantity": 20, "actual_quantity": 22},
            {"sku": "SKU-001", "bin_location": "A-01-01", "system_quantity": 20, "actual_quantity": 20},
            {"sku": "SKU-002", "bin_location": "B-01-01", "system_quantity": 3, "actual_quantity": -1},
        ]
        with self.assertRaises(ConflictException):
            self.service.reconcile_discrepancies(discrepancies, self.user)

        self.unit.refresh_from_db()
        self.assertEqual(self.unit.quantity, 22)
        self.assertEqual(InventoryUnit.objects.get(sku=other).quantity, 3)
        self.assertEqual(InventoryTransaction.objects.count(), 1)

    def test_zero_variances_are_skipped(self):
        result = self.service.reconcile_discrepancies(
            [{"sku": "SKU-001", "bin_location": "A-01-01", "system_quantity": 20, "actual_quantity": 20}],
            self.user,
        )
        self.assertEqual(result["reconciled"], 0)


class StockCountTest(StockControlTestCase):
    def test_submit_records_discrepancies_and_completes(self):
        count = self.service.create_stock_count("A-01-01", "CYCLIC", self.user)
        self.assertEqual(count.status, StockCount.Status.PENDING)

        result = self.service.submit_stock_count(
            count.count_id,
            [{"sku": "SKU-001", "counted_quantity": 18}, {"sku": "SKU-404", "counted_quantity": 0}],
            self.user,
        )

        count.refresh_from_db()
        self.assertEqual(count.status, StockCount.Status.COMPLETED)
        self.assertIsNotNone(count.completed_at)
        self.assertEqual(count.items.count(), 2)
        self.assertEqual(
            result["discrepancies"],
            [
                {
                    "sku": "SKU-001",
                    "bin_location": "A-01-01",
                    "expected_quantity": 20,
                    "counted_quantity": 18,
                    "variance": -2,
                    "variance_percent": Decimal("10.00"),
                    "severity": "HIGH",
                    "requires_approval": True,
                    "requires_manager_approval": False,
                    "can_auto_adjust": False,
                    "color_code": "#F97316",
                }
            ],
        )
        self.assertTrue(result["requires_approval"])
        item = count.items.get(sku="SKU-001")
        self.assertEqual(item.severity, "HIGH")
        self.assertEqual(item.variance_percent, Decimal("10.00"))

    def test_completed_count_cannot_be_resubmitted(self):
        count = self.service.create_stock_count("A-01-01", "SPOT", self.user)
        self.service.submit_stock_count(count.count_id, [{"sku": "SKU-001", "counted_quantity": 20}], self.user)

        with self.assertRaises(ConflictException):
            self.service.submit_stock_count(count.count_id, [{"sku": "SKU-001", "counted_quantity": 20}], self.user)

    def test_count_for_unknown_bin_is_not_found(self):
        with self.assertRaises(NotFoundException):
            self.service.create_stock_count("Z-99-99", "FULL", self.user)


class ReportsTest(StockControlTestCase):
    @override_settings(LOW_STOCK_THRESHOLD=10)
    def test_dashboard_counts(self):
        dashboard = self.service.get_dashboard()

        self.assertEqual(dashboard["total_skus"], 1)
        self.assertEqual(dashboard["total_bins"], 2)
        self.assertEqual(dashboard["low_stock_items"], 1)
        self.assertEqual(dashboard["out_of_stock_items"], 0)
        self.assertEqual(dashboard["total_inventory_value"], Decimal("50.00"))

    def test_low_stock_report_uses_available(self):
        report = self.service.get_low_stock_report(threshold=5)

        self.assertEqual(report["threshold"], 5)
        self.assertEqual([item["sku"] for item in report["items"]], ["SKU-001"])
        self.assertEqual(report["items"][0]["available"], 5)

    def test_movement_report_groups_by_sku(self):
        self.service.adjust_inventory("SKU-001", "A-01-01", 3, "Found", self.user)
        self.service.transfer_stock("SKU-001", "A-01-01", "B-01-01", 2, "", self.user)
        # Reservation traffic from an order that was created, picked into and cancelled
        self.service.reserve_stock(self.unit, 3, "SO0000000001", self.user)
        self.service.record_pick("SKU-001", "A-01-01", 1, "SO0000000001", self.user)
        self.service.release_reservation("SKU-001", "A-01-01", 3, "SO0000000001", self.user)

        movements = self.service.get_movement_report()["movements"]

        self.assertEqual(len(movements), 1)
        row = movements[0]
        self.assertEqual(row["name"], "Widget")
        self.assertEqual(row["receipts"], 2)
        self.assertEqual(row["deductions"], 2)
        self.assertEqual(row["adjustments"], 3)
        self.assertEqual(row["net_change"], 3)


class InventoryTransactionTest(StockControlTestCase):
    def test_saved_transactions_are_immutable(self):
        txn = InventoryTransaction.objects.create(type="RECEIPT", sku="SKU-001", quantity=1)
        self.assertTrue(txn.transaction_id.startswith("TXN-"))

        txn.reason = "edited"
        with self.assertRaises(ValidationError):
            txn.save()
        with self.assertRaises(ValidationError):
            txn.delete()
