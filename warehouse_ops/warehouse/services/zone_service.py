"""
Zone assignments: which picker works which warehouse zone.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from core.exceptions import ConflictException, NotFoundException, ValidationException
from notifications.events import EventPublisher
from notifications.models import NotificationType
from users.models import UserRole
from warehouse.models import BinLocation, ZoneAssignment

logger = logging.getLogger(__name__)


class ZoneAssignmentService:

    def __init__(self, using="default", events=None):
        self.using = using
        self.events = events or EventPublisher(using=using)

    def _assignments(self):
        return ZoneAssignment.objects.using(self.using)

    def assign_picker(self, picker_id, zone, user):
        """
        Put a picker on a zone.

        Raises:
            NotFoundException: Unknown picker or no active bin in the zone
            ValidationException: The user is not working as a picker
            ConflictException: The picker already works a zone
        """
        with transaction.atomic(using=self.using):
            picker = get_user_model().objects.using(self.using).select_for_update().filter(pk=picker_id).first()
            if picker is None:
                raise NotFoundException("User", picker_id)
            if picker.effective_role != UserRole.PICKER:
                raise ValidationException(
                    f"User {picker.username} is not a picker", {"role": picker.effective_role}
                )
            if not BinLocation.objects.using(self.using).filter(zone=zone, is_active=True).exists():
                raise NotFoundException("Zone", zone)

            current = self._assignments().filter(picker=picker, status=ZoneAssignment.Status.ACTIVE).first()
            if current is not None:
                raise ConflictException(
                    f"Picker {picker.username} is already assigned to zone {current.zone}",
                    {"zone": current.zone},
                    code="ZONE_ALREADY_ASSIGNED",
                )

            assignment = self._assignments().create(picker=picker, zone=zone, assigned_by=user)

            self.events.broadcast("zone-assignment", {"zone": zone, "picker_id": picker.pk, "assigned": True})
            self.events.notify(
                picker, NotificationType.ZONE_ASSIGNED,
                "Zone Assignment", f"You have been assigned to zone {zone}",
                data={"zone": zone},
            )

        logger.info(f"Picker {picker.username} assigned to zone {zone} by {user}")
        return assignment

    def release_picker(self, picker_id, user):
        with transaction.atomic(using=self.using):
            assignment = (
                self._assignments()
                .select_for_update()
                .filter(picker_id=picker_id, status=ZoneAssignment.Status.ACTIVE)
                .first()
            )
            if assignment is None:
                raise NotFoundException("Zone assignment for picker", picker_id)

            assignment.status = ZoneAssignment.Status.RELEASED
            assignment.released_at = timezone.now()
            assignment.save(update_fields=["status", "released_at"])

            self.events.broadcast(
                "zone-assignment", {"zone": assignment.zone, "picker_id": picker_id, "assigned": False}
            )

        logger.info(f"Picker {picker_id} released from zone {assignment.zone} by {user}")
        return assignment

    def get_assignments(self, zone=None, active_only=True):
        assignments = self._assignments().select_related("picker", "assigned_by")
        if active_only:
            assignments = assignments.filter(status=ZoneAssignment.Status.ACTIVE)
        if zone:
            assignments = assignments.filter(zone=zone)
        return assignments

    def get_zone_summary(self):
        """Active bins and active pickers per zone."""
        bins = (
            BinLocation.objects.using(self.using)
            .values("zone")
            .annotate(bins=Count("id", filter=Q(is_active=True)))
            .order_by("zone")
        )
        pickers = dict(
            self._assignments()
            .filter(status=ZoneAssignment.Status.ACTIVE)
            .values_list("zone")
            .order_by()
            .annotate(n=Count("id"))
        )
        return [
            {"zone": row["zone"], "active_bins": row["bins"], "active_pickers": pickers.get(row["zone"], 0)}
            for row in bins
        ]
