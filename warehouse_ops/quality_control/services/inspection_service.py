"""
Quality inspections: create, run and close inspections of received,
stored or outgoing stock.
"""

import logging

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from core.exceptions import InvalidTransitionException, NotFoundException, ValidationException
from notifications.events import EventPublisher
from notifications.models import NotificationPriority, NotificationType
from products.models import Sku
from quality_control.models import (
    DispositionAction,
    InspectionResult,
    InspectionStatus,
    QualityInspection,
)
from warehouse.models import BinLocation
from warehouse.services.stock_control_service import StockControlService

logger = logging.getLogger(__name__)


class QualityControlService:

    def __init__(self, using="default", events=None, stock=None):
        self.using = using
        self.events = events or EventPublisher(using=using)
        self.stock = stock or StockControlService(using=using)

    def _inspections(self):
        return QualityInspection.objects.using(self.using)

    def _locked(self, inspection_id):
        inspection = self._inspections().select_for_update().filter(inspection_id=inspection_id).first()
        if inspection is None:
            raise NotFoundException("Quality inspection", inspection_id)
        return inspection

    def create_inspection(self, data, inspector):
        sku = data["sku"]
        if not Sku.objects.using(self.using).filter(sku=sku).exists():
            raise NotFoundException("SKU", sku)
        location = data.get("location") or ""
        if location and not BinLocation.objects.using(self.using).filter(bin_id=location).exists():
            raise NotFoundException("Bin location", location)

        inspection = self._inspections().create(
            inspection_type=data["inspection_type"],
            reference_type=data["reference_type"],
            reference_id=data["reference_id"],
            sku=sku,
            quantity_inspected=data["quantity_inspected"],
            location=location,
            lot_number=data.get("lot_number") or "",
            expiration_date=data.get("expiration_date"),
            notes=data.get("notes") or "",
            inspector=inspector,
        )
        logger.info(f"Quality inspection {inspection.inspection_id} created for {sku} by {inspector}")
        return inspection

    def get_inspection(self, inspection_id):
        inspection = self._inspections().select_related("inspector", "approved_by").filter(
            inspection_id=inspection_id
        ).first()
        if inspection is None:
            raise NotFoundException("Quality inspection", inspection_id)
        return inspection

    def get_inspections(self, status=None, inspection_type=None, reference_type=None, reference_id=None,
                        sku=None, inspector=None):
        inspections = self._inspections().select_related("inspector", "approved_by")
        if status:
            inspections = inspections.filter(status=status)
        if inspection_type:
            inspections = inspections.filter(inspection_type=inspection_type)
        if reference_type:
            inspections = inspections.filter(reference_type=reference_type)
        if reference_id:
            inspections = inspections.filter(reference_id=reference_id)
        if sku:
            inspections = inspections.filter(sku=sku)
        if inspector:
            inspections = inspections.filter(inspector_id=inspector)
        return inspections.order_by("-created_at", "-id")

    def start_inspection(self, inspection_id, user):
        with transaction.atomic(using=self.using):
            inspection = self._locked(inspection_id)
            if inspection.status != InspectionStatus.PENDING:
                raise InvalidTransitionException(inspection.status, InspectionStatus.IN_PROGRESS, "inspection")
            inspection.status = InspectionStatus.IN_PROGRESS
            inspection.started_at = timezone.now()
            if inspection.inspector_id is None:
                inspection.inspector = user
            inspection.save()

        logger.info(f"Inspection {inspection_id} started by {user}")
        return inspection

    def complete_inspection(self, inspection_id, data, user):
        """
        Close an open inspection with its outcome.

        Quantities not given are derived from the outcome: passed and
        failed units always add up to the inspected quantity. Failed
        units need a defect type. Scrapped units are written off the
        inspected bin.

        Raises:
            NotFoundException: Unknown inspection
            InvalidTransitionException: The inspection is already closed
            ValidationException: Quantities or defect details are inconsistent
        """
        new_status = data["status"]

        with transaction.atomic(using=self.using):
            inspection = self._locked(inspection_id)
            if not inspection.is_open:
                raise InvalidTransitionException(inspection.status, new_status, "inspection")

            if new_status != InspectionStatus.CANCELLED:
                passed, failed = self._split(inspection, new_status, data)
                if failed and not data.get("defect_type"):
                    raise ValidationException("Failed units need a defect type", {"defect_type": "required"})

                inspection.quantity_passed = passed
                inspection.quantity_failed = failed
                inspection.defect_type = data.get("defect_type") or ""
                inspection.defect_description = data.get("defect_description") or ""
                inspection.disposition_action = data.get("disposition_action") or ""
                inspection.disposition_notes = data.get("disposition_notes") or ""

                if failed and inspection.disposition_action == DispositionAction.SCRAP and inspection.location:
                    self.stock.adjust_inventory(
                        inspection.sku,
                        inspection.location,
                        -failed,
                        f"Scrapped after inspection {inspection_id}",
                        user,
                    )

            if data.get("notes"):
                inspection.notes = data["notes"]
            inspection.status = new_status
            inspection.approved_by = user
            inspection.completed_at = timezone.now()
            inspection.save()

            self.events.broadcast(
                "inspection-completed",
                {"inspection_id": inspection_id, "sku": inspection.sku, "status": new_status},
            )
            if new_status != InspectionStatus.CANCELLED:
                failed_outcome = new_status == InspectionStatus.FAILED
                self.events.notify(
                    inspection.inspector,
                    NotificationType.QUALITY_FAILED if failed_outcome else NotificationType.QUALITY_APPROVED,
                    "Quality inspection failed" if failed_outcome else "Quality inspection approved",
                    f"Inspection {inspection_id} for {inspection.sku} - {new_status}",
                    data={
                        "inspection_id": inspection_id,
                        "sku": inspection.sku,
                        "quantity_passed": inspection.quantity_passed,
                        "quantity_failed": inspection.quantity_failed,
                    },
                    priority=NotificationPriority.HIGH if failed_outcome else NotificationPriority.NORMAL,
                )

        logger.info(f"Inspection {inspection_id} closed as {new_status} by {user}")
        return inspection

    def _split(self, inspection, new_status, data):
        total = inspection.quantity_inspected
        passed, failed = data.get("quantity_passed"), data.get("quantity_failed")
        if passed is None and failed is None:
            if new_status == InspectionStatus.FAILED:
                passed, failed = 0, total
            else:
                passed, failed = total, 0
        elif passed is None:
            passed = total - failed
        elif failed is None:
            failed = total - passed

        if passed < 0 or failed < 0 or passed + failed != total:
            raise ValidationException(
                "Passed and failed quantities must add up to the inspected quantity",
                {"quantity_inspected": total, "quantity_passed": passed, "quantity_failed": failed},
            )
        if new_status == InspectionStatus.PASSED and failed:
            raise ValidationException("A passed inspection cannot have failed units", {"quantity_failed": failed})
        if new_status == InspectionStatus.FAILED and not failed:
            raise ValidationException("A failed inspection needs failed units", {"quantity_failed": failed})
        return passed, failed

    def record_result(self, inspection_id, data, user):
        with transaction.atomic(using=self.using):
            inspection = self._locked(inspection_id)
            if not inspection.is_open:
                raise ValidationException(f"Inspection {inspection_id} is already {inspection.status}")
            result = InspectionResult.objects.using(self.using).create(
                inspection=inspection,
                check_name=data["check_name"],
                passed=data["passed"],
                notes=data.get("notes") or "",
                recorded_by=user,
            )

        logger.info(f"Inspection {inspection_id}: {result.check_name} recorded by {user}")
        return result

    def get_results(self, inspection_id):
        inspection = self.get_inspection(inspection_id)
        return InspectionResult.objects.using(self.using).filter(inspection=inspection).select_related("recorded_by")

    def get_summary(self):
        inspections = self._inspections()
        by_status = {
            row["status"]: row["count"]
            for row in inspections.order_by().values("status").annotate(count=Count("id"))
        }
        totals = inspections.filter(completed_at__isnull=False).aggregate(
            passed=Sum("quantity_passed", default=0), failed=Sum("quantity_failed", default=0)
        )
        checked = totals["passed"] + totals["failed"]
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "units_passed": totals["passed"],
            "units_failed": totals["failed"],
            "pass_rate": round(totals["passed"] / checked * 100, 2) if checked else None,
        }
