"""
Tests for quality inspections.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from core.exceptions import InvalidTransitionException, NotFoundException, ValidationException
from products.models import Sku
from quality_control.models import InspectionResult, InspectionStatus
from quality_control.services import QualityControlService
from warehouse.models import BinLocation, InventoryTransaction, InventoryUnit


class RecordingEvents:
    def __init__(self):
        self.broadcasts = []
        self.notifications = []

    def broadcast(self, event, data):
        self.broadcasts.append((event, data))

    def notify(self, user, notification_type, title, message, data=None, **kwargs):
        self.notifications.append((user, notification_type, kwargs.get("priority")))


class InspectionFixtures:
    def setUp(self):
        User = get_user_model()
        self.inspector = User.objects.create_user(username="controller", password="testpass123", role="stock_controller")
        self.supervisor = User.objects.create_user(username="supervisor", password="testpass123", role="supervisor")
        self.picker = User.objects.create_user(username="picker", password="testpass123", role="picker")
        self.sku = Sku.objects.create(sku="SKU-001", name="Widget", unit_price=Decimal("3.00"))
        self.bin = BinLocation.objects.create(bin_id="A-01-01", zone="A", aisle="01", shelf="01")
        self.unit = InventoryUnit.objects.create(sku=self.sku, bin_location=self.bin, quantity=40)

    def inspection_data(self, **overrides):
        data = {
            "inspection_type": "INCOMING",
            "reference_type": "RECEIPT",
            "reference_id": "RCV-1001",
            "sku": "SKU-001",
            "quantity_inspected": 10,
            "location": "A-01-01",
        }
        data.update(overrides)
        return data


class QualityControlServiceTest(InspectionFixtures, TestCase):
    def setUp(self):
        super().setUp()
        self.events = RecordingEvents()
        self.service = QualityControlService(events=self.events)

    def test_create_and_start(self):
        inspection = self.service.create_inspection(self.inspection_data(), self.inspector)
        self.assertTrue(inspection.inspection_id.startswith("QI-"))
        self.assertEqual(inspection.status, InspectionStatus.PENDING)

        inspection = self.service.start_inspection(inspection.inspection_id, self.inspector)
        self.assertEqual(inspection.status, InspectionStatus.IN_PROGRESS)
        self.assertIsNotNone(inspection.started_at)

        with self.assertRaises(InvalidTransitionException):
            self.service.start_inspection(inspection.inspection_id, self.inspector)

    def test_unknown_sku_or_bin(self):
        with self.assertRaises(NotFoundException):
            self.service.create_inspection(self.inspection_data(sku="SKU-404"), self.inspector)
        with self.assertRaises(NotFoundException):
            self.service.create_inspection(self.inspection_data(location="Z-99-99"), self.inspector)

    def test_pass_derives_quantities_and_notifies_inspector(self):
        inspection = self.service.create_inspection(self.inspection_data(), self.inspector)
        inspection = self.service.complete_inspection(
            inspection.inspection_id, {"status": "PASSED"}, self.supervisor
        )

        self.assertEqual(inspection.quantity_passed, 10)
        self.assertEqual(inspection.quantity_failed, 0)
        self.assertEqual(inspection.approved_by, self.supervisor)
        self.assertIsNotNone(inspection.completed_at)
        self.assertEqual(self.events.notifications, [(self.inspector, "QUALITY_APPROVED", "NORMAL")])
        self.assertEqual(self.events.broadcasts[0][0], "inspection-completed")

    def test_failed_units_need_defect_type(self):
        inspection = self.service.create_inspection(self.inspection_data(), self.inspector)
        with self.assertRaises(ValidationException):
            self.service.complete_inspection(
                inspection.inspection_id, {"status": "CONDITIONAL_PASSED", "quantity_failed": 2}, self.supervisor
            )

        inspection = self.service.complete_inspection(
            inspection.inspection_id,
            {"status": "CONDITIONAL_PASSED", "quantity_failed": 2, "defect_type": "PACKAGING"},
            self.supervisor,
        )
        self.assertEqual(inspection.quantity_passed, 8)

    def test_quantities_must_add_up(self):
        inspection = self.service.create_inspection(self.inspection_data(), self.inspector)
        for data in (
            {"status": "FAILED", "quantity_passed": 3, "quantity_failed": 3, "defect_type": "DAMAGED"},
            {"status": "PASSED", "quantity_failed": 1, "defect_type": "DAMAGED"},
            {"status": "FAILED", "quantity_passed": 10},
            {"status": "PASSED", "quantity_passed": 11},
        ):
            with self.assertRaises(ValidationException):
                self.service.complete_inspection(inspection.inspection_id, data, self.supervisor)

        inspection.refresh_from_db()
        self.assertEqual(inspection.status, InspectionStatus.PENDING)

    def test_scrapped_units_are_written_off(self):
        inspection = self.service.create_inspection(self.inspection_data(), self.inspector)
        inspection = self.service.complete_inspection(
            inspection.inspection_id,
            {"status": "FAILED", "quantity_failed": 4, "quantity_passed": 6,
             "defect_type": "DAMAGED", "disposition_action": "SCRAP"},
            self.supervisor,
        )

        self.unit.refresh_from_db()
        self.assertEqual(self.unit.quantity, 36)
        txn = InventoryTransaction.objects.get(type="ADJUSTMENT")
        self.assertEqual(txn.quantity, -4)
        self.assertEqual(self.events.notifications, [(self.inspector, "QUALITY_FAILED", "HIGH")])

    def test_quarantine_leaves_stock_alone(self):
        inspection = self.service.create_inspection(self.inspection_data(), self.inspector)
        self.service.complete_inspection(
            inspection.inspection_id,
            {"status": "FAILED", "defect_type": "CONTAMINATED", "disposition_action": "QUARANTINE"},
            self.supervisor,
        )
        self.unit.refresh_from_db()
        self.assertEqual(self.unit.quantity, 40)

    def test_closed_inspection_is_final(self):
        inspection = self.service.create_inspection(self.inspection_data(), self.inspector)
        self.service.complete_inspection(inspection.inspection_id, {"status": "CANCELLED"}, self.supervisor)

        with self.assertRaises(InvalidTransitionException):
            self.service.complete_inspection(inspection.inspection_id, {"status": "PASSED"}, self.supervisor)
        with self.assertRaises(ValidationException):
            self.service.record_result(
                inspection.inspection_id, {"check_name": "Seal intact", "passed": True}, self.inspector
            )
        self.assertEqual(self.events.notifications, [])

    def test_results_and_summary(self):
        first = self.service.create_inspection(self.inspection_data(), self.inspector)
        self.service.record_result(first.inspection_id, {"check_name": "Label", "passed": True}, self.inspector)
        self.service.record_result(first.inspection_id, {"check_name": "Seal", "passed": False}, self.inspector)
        self.service.complete_inspection(
            first.inspection_id, {"status": "FAILED", "quantity_failed": 5, "defect_type": "PACKAGING"},
            self.supervisor,
        )
        self.service.create_inspection(self.inspection_data(reference_id="RCV-1002"), self.inspector)

        self.assertEqual(
            [r.check_name for r in self.service.get_results(first.inspection_id)], ["Label", "Seal"]
        )
        summary = self.service.get_summary()
        self.assertEqual(summary["total"], 2)
        self.assertEqual(summary["by_status"], {"FAILED": 1, "PENDING": 1})
        self.assertEqual(summary["pass_rate"], 50.0)
        self.assertEqual(self.service.get_inspections(reference_id="RCV-1002").count(), 1)


class InspectionAPITest(InspectionFixtures, APITestCase):
    base = "/api/v1/quality-control/inspections"

    def test_inspection_lifecycle(self):
        self.client.force_authenticate(self.inspector)
        response = self.client.post(self.base, self.inspection_data(), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        inspection_id = response.data["inspection_id"]
        self.assertEqual(response.data["inspector_name"], "controller")

        response = self.client.post(f"{self.base}/{inspection_id}/start")
        self.assertEqual(response.data["status"], "IN_PROGRESS")

        response = self.client.post(
            f"{self.base}/{inspection_id}/results", {"check_name": "Count", "passed": True}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(self.client.get(f"{self.base}/{inspection_id}/results").data), 1)

        response = self.client.post(f"{self.base}/{inspection_id}/complete", {"status": "PASSED"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.supervisor)
        response = self.client.post(f"{self.base}/{inspection_id}/complete", {"status": "PASSED"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["approved_by_name"], "supervisor")

        response = self.client.post(f"{self.base}/{inspection_id}/complete", {"status": "FAILED"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "INVALID_TRANSITION")

    def test_picker_can_read_but_not_open(self):
        self.client.force_authenticate(self.picker)
        response = self.client.post(self.base, self.inspection_data(), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.get(self.base)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 0)

    def test_bad_input_is_rejected(self):
        self.client.force_authenticate(self.inspector)
        response = self.client.post(self.base, self.inspection_data(quantity_inspected=0), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get(self.base, {"inspector": "someone"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get(f"{self.base}/QI-NOPE")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(InspectionResult.objects.exists())
