import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Case, DecimalField, ExpressionWrapper, F, IntegerField, Q, Sum, When
from django.db.models.functions import Abs
from django.utils import timezone

from core.exceptions import ConflictException, NotFoundException, ValidationException
from products.models import Sku
from warehouse.models import (
    BinLocation,
    InventoryTransaction,
    InventoryUnit,
    StockCount,
    StockCountItem,
)
from warehouse.services.variance_service import VarianceSeverityService, variance_percent

logger = logging.getLogger(__name__)

AVAILABLE = ExpressionWrapper(F("quantity") - F("reserved"), output_field=IntegerField())

# Types that change on-hand quantity; reservations and releases only move `reserved`
STOCK_MOVEMENT_TYPES = [
    InventoryTransaction.Type.RECEIPT,
    InventoryTransaction.Type.DEDUCTION,
    InventoryTransaction.Type.ADJUSTMENT,
]


class StockControlService:
    """
    Service for stock control: adjustments, transfers, counts and reports.

    Every mutation runs inside its own ``transaction.atomic`` block on the
    configured database alias and writes an InventoryTransaction row.
    """

    def __init__(self, using="default", severity=None):
        self.using = using
        self.severity = severity or VarianceSeverityService(using=using)

    def _units(self):
        return InventoryUnit.objects.using(self.using)

    def _record(self, txn_type, sku, quantity, bin_location="", user=None, reason="", order_id=""):
        return InventoryTransaction.objects.using(self.using).create(
            type=txn_type,
            sku=sku,
            quantity=quantity,
            bin_location=bin_location,
            user=user,
            reason=reason,
            order_id=order_id,
        )

    def low_stock_threshold(self):
        return getattr(settings, "LOW_STOCK_THRESHOLD", 10)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def adjust_inventory(self, sku, bin_location, quantity, reason, user):
        """
        Apply a signed quantity change to one inventory unit.

        Args:
            sku: SKU code
            bin_location: Bin id holding the unit
            quantity: Signed delta to apply
            reason: Free-text reason stored on the transaction
            user: User performing the adjustment

        Returns:
            Dict describing the adjustment

        Raises:
            ValidationException: If the delta is zero
            NotFoundException: If no unit exists for sku/bin
            ConflictException: If the result would be negative
        """
        if quantity == 0:
            raise ValidationException("Adjustment quantity cannot be zero")

        with transaction.atomic(using=self.using):
            unit = self._units().select_for_update().filter(sku_id=sku, bin_location_id=bin_location).first()
            if unit is None:
                raise NotFoundException("Inventory", f"{sku} at {bin_location}")

            before = unit.quantity
            after = before + quantity
            if after < 0:
                raise ConflictException(
                    f"Adjustment would result in negative inventory ({after})",
                    details={"sku": sku, "bin_location": bin_location, "current": before, "delta": quantity},
                )

            unit.quantity = after
            unit.reserved = min(unit.reserved, after)
            unit.save(update_fields=["quantity", "reserved", "last_updated"])

            txn = self._record(
                InventoryTransaction.Type.ADJUSTMENT, sku, quantity, bin_location, user, reason
            )

        logger.info(f"Inventory adjusted: {sku} at {bin_location} {before} -> {after} by {user}")

        return {
            "transaction_id": txn.transaction_id,
            "sku": sku,
            "bin_location": bin_location,
            "quantity_before": before,
            "quantity_after": after,
            "quantity": quantity,
            "reason": reason,
        }

    def transfer_stock(self, sku, from_bin, to_bin, quantity, reason, user):
        """
        Move available stock of one SKU between two bins.

        Only the source quantity is debited; reservations stay on the source.

        Raises:
            ValidationException: Same bin or non-positive quantity
            NotFoundException: Missing source unit or unknown destination bin
            ConflictException: Insufficient available stock at source
        """
        if from_bin == to_bin:
            raise ValidationException("Source and destination bins must differ")
        if quantity < 1:
            raise ValidationException("Transfer quantity must be at least 1")

        with transaction.atomic(using=self.using):
            source = self._units().select_for_update().filter(sku_id=sku, bin_location_id=from_bin).first()
            if source is None:
                raise NotFoundException("Inventory", f"{sku} at {from_bin}")
            if not BinLocation.objects.using(self.using).filter(bin_id=to_bin).exists():
                raise NotFoundException("Bin location", to_bin)
            if source.available < quantity:
                raise ConflictException(
                    f"Insufficient available stock at {from_bin}. Available: {source.available}, requested: {quantity}",
                    details={"available": source.available, "requested": quantity},
                )

            destination, _ = self._units().select_for_update().get_or_create(
                sku_id=sku, bin_location_id=to_bin, defaults={"quantity": 0, "reserved": 0}
            )

            source.quantity = F("quantity") - quantity
            source.save(update_fields=["quantity", "last_updated"])
            destination.quantity = F("quantity") + quantity
            destination.save(update_fields=["quantity", "last_updated"])

            note = reason or f"Transfer {from_bin} -> {to_bin}"
            out_txn = self._record(InventoryTransaction.Type.DEDUCTION, sku, -quantity, from_bin, user, note)
            in_txn = self._record(InventoryTransaction.Type.RECEIPT, sku, quantity, to_bin, user, note)

        logger.info(f"Transferred {quantity} x {sku} from {from_bin} to {to_bin} by {user}")

        return {
            "sku": sku,
            "from_bin": from_bin,
            "to_bin": to_bin,
            "quantity": quantity,
            "transaction_ids": [out_txn.transaction_id, in_txn.transaction_id],
        }

    def find_pick_unit(self, sku, quantity):
        """Return the first unit of ``sku`` able to cover ``quantity``, locked for update."""
        return (
            self._units()
            .select_for_update()
            .annotate(available_qty=AVAILABLE)
            .filter(sku_id=sku, available_qty__gte=quantity, bin_location__is_active=True)
            .order_by("bin_location_id")
            .first()
        )

    def reserve_stock(self, unit, quantity, order_id, user=None):
        unit.reserved = F("reserved") + quantity
        unit.save(update_fields=["reserved", "last_updated"])
        self._record(
            InventoryTransaction.Type.RESERVATION,
            unit.sku_id,
            quantity,
            unit.bin_location_id,
            user,
            f"Reserved for order {order_id}",
            order_id,
        )

    def release_reservation(self, sku, bin_location, quantity, order_id, user=None, reason=""):
        """Release a reservation, never taking ``reserved`` below zero."""
        unit = self._units().select_for_update().filter(sku_id=sku, bin_location_id=bin_location).first()
        if unit is None:
            return
        released = min(quantity, unit.reserved)
        unit.reserved -= released
        unit.save(update_fields=["reserved", "last_updated"])
        self._record(
            InventoryTransaction.Type.CANCELLATION,
            sku,
            released,
            bin_location,
            user,
            reason or f"Reservation released for order {order_id}",
            order_id,
        )

    def deduct_shipped(self, sku, bin_location, quantity, order_id, user=None):
        """Remove shipped stock and its reservation from a unit."""
        unit = self._units().select_for_update().filter(sku_id=sku, bin_location_id=bin_location).first()
        if unit is None:
            raise NotFoundException("Inventory", f"{sku} at {bin_location}")
        if unit.quantity < quantity:
            raise ConflictException(
                f"Cannot ship {quantity} x {sku} from {bin_location}; only {unit.quantity} on hand"
            )
        unit.quantity -= quantity
        unit.reserved = max(0, min(unit.reserved - quantity, unit.quantity))
        unit.save(update_fields=["quantity", "reserved", "last_updated"])
        self._record(
            InventoryTransaction.Type.DEDUCTION,
            sku,
            -quantity,
            bin_location,
            user,
            f"Shipped on order {order_id}",
            order_id,
        )

    def record_pick(self, sku, bin_location, quantity, order_id, user=None, reason="Pick confirmed"):
        self._record(
            InventoryTransaction.Type.RESERVATION,
            sku,
            quantity,
            bin_location,
            user,
            reason,
            order_id,
        )

    def reconcile_discrepancies(self, discrepancies, user):
        """
        Apply one adjustment per non-zero variance.

        Each adjustment commits on its own, so a failure part way through
        stops processing but keeps the adjustments already applied.
        """
        details = []
        for item in discrepancies:
            variance = item["actual_quantity"] - item["system_quantity"]
            if variance == 0:
                continue
            details.append(
                self.adjust_inventory(
                    item["sku"],
                    item["bin_location"],
                    variance,
                    item.get("reason") or "Reconciliation: Stock count correction",
                    user,
                )
            )

        logger.info(f"Reconciled {len(details)} of {len(discrepancies)} discrepancies by {user}")
        return {"reconciled": len(details), "details": details}

    def create_stock_count(self, bin_location, count_type, user):
        if count_type not in StockCount.Type.values:
            raise ValidationException(f"Invalid stock count type: {count_type}", {"type": StockCount.Type.values})
        if not BinLocation.objects.using(self.using).filter(bin_id=bin_location).exists():
            raise NotFoundException("Bin location", bin_location)

        count = StockCount.objects.using(self.using).create(
            bin_location_id=bin_location, type=count_type, created_by=user
        )
        logger.info(f"Stock count {count.count_id} created for {bin_location} by {user}")
        return count

    def submit_stock_count(self, count_id, items, user):
        """
        Record counted quantities for a stock count and close it.

        Args:
            count_id: Stock count id
            items: List of dicts with ``sku``, ``counted_quantity`` and optional ``notes``
            user: User submitting the count

        Returns:
            Dict with the count id, status and the list of discrepancies,
            each classified by variance severity
        """
        with transaction.atomic(using=self.using):
            count = StockCount.objects.using(self.using).select_for_update().filter(count_id=count_id).first()
            if count is None:
                raise NotFoundException("Stock count", count_id)
            if count.status in (StockCount.Status.COMPLETED, StockCount.Status.CANCELLED):
                raise ConflictException(f"Stock count {count_id} is already {count.status}")

            discrepancies = []
            for item in items:
                unit = self._units().filter(sku_id=item["sku"], bin_location_id=count.bin_location_id).first()
                expected = unit.quantity if unit else 0
                counted = item["counted_quantity"]
                variance = counted - expected
                pct = variance_percent(expected, counted)
                severity = self.severity.classify(pct) if variance else None

                StockCountItem.objects.using(self.using).create(
                    stock_count=count,
                    sku=item["sku"],
                    expected_quantity=expected,
                    counted_quantity=counted,
                    variance=variance,
                    variance_percent=pct,
                    severity=severity["severity"] if severity else "",
                    notes=item.get("notes", ""),
                )
                if variance != 0:
                    discrepancies.append(
                        {
                            "sku": item["sku"],
                            "bin_location": count.bin_location_id,
                            "expected_quantity": expected,
                            "counted_quantity": counted,
                            "variance": variance,
                            "variance_percent": pct,
                            **severity,
                        }
                    )

            count.status = StockCount.Status.COMPLETED
            count.completed_at = timezone.now()
            count.save(update_fields=["status", "completed_at"])

        logger.info(f"Stock count {count_id} submitted by {user} with {len(discrepancies)} discrepancies")
        return {
            "count_id": count_id,
            "status": count.status,
            "requires_approval": any(d["requires_approval"] for d in discrepancies),
            "discrepancies": discrepancies,
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_stock_counts(self, status=None):
        counts = StockCount.objects.using(self.using).select_related("created_by").prefetch_related("items")
        if status:
            counts = counts.filter(status=status)
        return counts.order_by("-created_at")

    def get_dashboard(self):
        threshold = self.low_stock_threshold()
        units = self._units().annotate(available_qty=AVAILABLE)
        value = units.aggregate(
            total=Sum(F("quantity") * F("sku__unit_price"), output_field=DecimalField(max_digits=16, decimal_places=2))
        )["total"] or 0

        return {
            "total_skus": Sku.objects.using(self.using).filter(is_active=True).count(),
            "total_bins": BinLocation.objects.using(self.using).filter(is_active=True).count(),
            "low_stock_items": units.filter(available_qty__gt=0, available_qty__lte=threshold).count(),
            "out_of_stock_items": units.filter(available_qty=0, quantity__gt=0).count(),
            "pending_stock_counts": StockCount.objects.using(self.using)
            .filter(status__in=[StockCount.Status.PENDING, StockCount.Status.IN_PROGRESS])
            .count(),
            "total_inventory_value": value,
            "recent_transactions": list(InventoryTransaction.objects.using(self.using).order_by("-timestamp", "-id")[:10]),
        }

    def get_inventory_list(self, search=None, bin_location=None, zone=None, low_stock=False):
        units = self._units().select_related("sku", "bin_location").annotate(available_qty=AVAILABLE)
        if search:
            units = units.filter(Q(sku__sku__icontains=search) | Q(sku__name__icontains=search))
        if bin_location:
            units = units.filter(bin_location_id=bin_location)
        if zone:
            units = units.filter(bin_location__zone=zone)
        if low_stock:
            units = units.filter(available_qty__lte=self.low_stock_threshold())
        return units.order_by("sku_id", "bin_location_id")

    def get_sku_inventory_detail(self, sku):
        sku_obj = Sku.objects.using(self.using).filter(sku=sku).first()
        if sku_obj is None:
            raise NotFoundException("SKU", sku)

        units = list(self._units().filter(sku=sku_obj).order_by("bin_location_id"))
        total_quantity = sum(u.quantity for u in units)
        total_reserved = sum(u.reserved for u in units)

        return {
            "sku": sku_obj,
            "inventory": units,
            "total_quantity": total_quantity,
            "total_reserved": total_reserved,
            "total_available": total_quantity - total_reserved,
            "recent_transactions": list(
                InventoryTransaction.objects.using(self.using).filter(sku=sku).order_by("-timestamp", "-id")[:20]
            ),
        }

    def get_transaction_history(self, sku=None, txn_type=None, order_id=None, bin_location=None,
                                start_date=None, end_date=None):
        txns = InventoryTransaction.objects.using(self.using).select_related("user")
        if sku:
            txns = txns.filter(sku=sku)
        if txn_type:
            txns = txns.filter(type=txn_type)
        if order_id:
            txns = txns.filter(order_id=order_id)
        if bin_location:
            txns = txns.filter(bin_location=bin_location)
        if start_date:
            txns = txns.filter(timestamp__gte=start_date)
        if end_date:
            txns = txns.filter(timestamp__lte=end_date)
        return txns.order_by("-timestamp", "-id")

    def get_low_stock_report(self, threshold=None):
        if threshold is None:
            threshold = self.low_stock_threshold()
        items = (
            self._units()
            .select_related("sku", "sku__category")
            .annotate(available_qty=AVAILABLE)
            .filter(available_qty__gt=0, available_qty__lte=threshold)
            .order_by("available_qty", "sku_id")
        )
        return {
            "threshold": threshold,
            "items": [
                {
                    "sku": unit.sku_id,
                    "name": unit.sku.name,
                    "category": unit.sku.category.name if unit.sku.category else None,
                    "bin_location": unit.bin_location_id,
                    "available": unit.available_qty,
                    "quantity": unit.quantity,
                }
                for unit in items
            ],
            "generated_at": timezone.now(),
        }

    def get_movement_report(self, start_date=None, end_date=None, sku=None):
        """Per-SKU totals of receipts, deductions and adjustments over a period."""
        txns = self.get_transaction_history(sku=sku, start_date=start_date, end_date=end_date)
        rows = (
            txns.order_by()
            .values("sku")
            .annotate(
                receipts=Sum(Case(When(type=InventoryTransaction.Type.RECEIPT, then=F("quantity")), default=0)),
                deductions=Sum(
                    Case(When(type=InventoryTransaction.Type.DEDUCTION, then=Abs(F("quantity"))), default=0)
                ),
                adjustments=Sum(Case(When(type=InventoryTransaction.Type.ADJUSTMENT, then=F("quantity")), default=0)),
                net_change=Sum("quantity", filter=Q(type__in=STOCK_MOVEMENT_TYPES), default=0),
            )
            .order_by("sku")
        )
        names = dict(
            Sku.objects.using(self.using).filter(sku__in=[r["sku"] for r in rows]).values_list("sku", "name")
        )
        return {
            "movements": [dict(row, name=names.get(row["sku"], "")) for row in rows],
            "period": {"start_date": start_date, "end_date": end_date},
            "generated_at": timezone.now(),
        }

    def get_bin_locations(self, zone=None, active=None):
        bins = BinLocation.objects.using(self.using).all()
        if zone:
            bins = bins.filter(zone=zone)
        if active is not None:
            bins = bins.filter(is_active=active)
        return bins.order_by("bin_id")
