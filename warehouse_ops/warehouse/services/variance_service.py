"""
Severity classification for stock count variances.

Supervisors configure percentage bands (LOW to CRITICAL); a stock count
discrepancy is classified by the absolute variance relative to the
system quantity.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction

from core.exceptions import ConflictException, NotFoundException, ValidationException
from warehouse.models import VarianceSeverity, VarianceSeverityConfig

logger = logging.getLogger(__name__)

DEFAULT_BANDS = [
    # (level, min %, max %, requires approval, auto adjust, colour)
    (VarianceSeverity.LOW, "0", "2", False, True, "#10B981"),
    (VarianceSeverity.MEDIUM, "2", "5", True, False, "#F59E0B"),
    (VarianceSeverity.HIGH, "5", "10", True, False, "#F97316"),
    (VarianceSeverity.CRITICAL, "10", "999999", True, False, "#EF4444"),
]

DEFAULT_COLORS = {level: color for level, _, _, _, _, color in DEFAULT_BANDS}

CRITICAL_FALLBACK = {
    "severity": VarianceSeverity.CRITICAL,
    "requires_approval": True,
    "requires_manager_approval": True,
    "can_auto_adjust": False,
    "color_code": DEFAULT_COLORS[VarianceSeverity.CRITICAL],
}


def variance_percent(expected, counted):
    """
    Absolute variance as a percentage of the expected quantity.

    Stock found where none was expected counts as a 100% variance.
    """
    if expected > 0:
        pct = Decimal(abs(counted - expected)) * 100 / Decimal(expected)
    else:
        pct = Decimal(100) if counted else Decimal(0)
    return pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _default_configs():
    return [
        VarianceSeverityConfig(
            config_id=f"severity-{level.lower()}",
            severity_level=level,
            min_variance_percent=Decimal(low),
            max_variance_percent=Decimal(high),
            requires_approval=approval,
            auto_adjust=auto,
            color_code=color,
        )
        for level, low, high, approval, auto, color in DEFAULT_BANDS
    ]


class VarianceSeverityService:

    def __init__(self, using="default"):
        self.using = using

    def _configs(self):
        return VarianceSeverityConfig.objects.using(self.using)

    def _bands(self):
        """Active bands, or the built-in defaults while none have been configured."""
        if not self._configs().exists():
            return _default_configs()
        return list(self._configs().filter(is_active=True).order_by("max_variance_percent"))

    def get_configs(self, include_inactive=False):
        configs = self._configs()
        if not configs.exists():
            return _default_configs()
        if not include_inactive:
            configs = configs.filter(is_active=True)
        return configs.order_by("min_variance_percent")

    def get_config(self, config_id):
        config = self._configs().filter(config_id=config_id).first()
        if config is None:
            raise NotFoundException("Severity config", config_id)
        return config

    def classify(self, pct):
        """
        Return the severity determination for a variance percentage.

        A percentage on a shared boundary belongs to the lower band. A
        percentage outside every band is treated as CRITICAL.
        """
        pct = abs(Decimal(pct))
        for band in sorted(self._bands(), key=lambda b: b.max_variance_percent):
            if band.min_variance_percent <= pct <= band.max_variance_percent:
                return {
                    "severity": band.severity_level,
                    "requires_approval": band.requires_approval,
                    "requires_manager_approval": band.requires_manager_approval,
                    "can_auto_adjust": band.auto_adjust,
                    "color_code": band.color_code,
                }

        logger.warning(f"No severity band covers variance {pct}%, defaulting to CRITICAL")
        return dict(CRITICAL_FALLBACK)

    def _check_overlap(self, low, high, exclude_pk=None):
        # Bands may touch at a boundary but not overlap
        clash = self._configs().filter(
            is_active=True, min_variance_percent__lt=high, max_variance_percent__gt=low
        )
        if exclude_pk is not None:
            clash = clash.exclude(pk=exclude_pk)
        existing = clash.first()
        if existing is not None:
            raise ConflictException(
                "Variance range overlaps with an existing configuration",
                {"config_id": existing.config_id},
                code="SEVERITY_RANGE_OVERLAP",
            )

    def create_config(self, data, user=None):
        low, high = data["min_variance_percent"], data["max_variance_percent"]
        if low > high:
            raise ValidationException(
                "min_variance_percent must not exceed max_variance_percent",
                {"min_variance_percent": low, "max_variance_percent": high},
            )

        with transaction.atomic(using=self.using):
            self._check_overlap(low, high)
            config = self._configs().create(
                severity_level=data["severity_level"],
                min_variance_percent=low,
                max_variance_percent=high,
                requires_approval=data.get("requires_approval", True),
                requires_manager_approval=data.get("requires_manager_approval", False),
                auto_adjust=data.get("auto_adjust", False),
                color_code=data.get("color_code") or DEFAULT_COLORS.get(data["severity_level"], "#000000"),
            )

        logger.info(f"Severity config {config.config_id} ({config.severity_level}) created by {user}")
        return config

    def update_config(self, config_id, data, user=None):
        with transaction.atomic(using=self.using):
            config = self._configs().select_for_update().filter(config_id=config_id).first()
            if config is None:
                raise NotFoundException("Severity config", config_id)

            for field, value in data.items():
                setattr(config, field, value)
            if config.min_variance_percent > config.max_variance_percent:
                raise ValidationException(
                    "min_variance_percent must not exceed max_variance_percent",
                    {"min_variance_percent": config.min_variance_percent,
                     "max_variance_percent": config.max_variance_percent},
                )
            if config.is_active:
                self._check_overlap(config.min_variance_percent, config.max_variance_percent, exclude_pk=config.pk)
            config.save()

        logger.info(f"Severity config {config_id} updated by {user}")
        return config

    def deactivate_config(self, config_id, user=None):
        config = self.get_config(config_id)
        config.is_active = False
        config.save(update_fields=["is_active", "updated_at"])
        logger.info(f"Severity config {config_id} deactivated by {user}")
        return config

    def reset_to_defaults(self, user=None):
        """Replace every configured band with the built-in defaults."""
        with transaction.atomic(using=self.using):
            self._configs().all().delete()
            configs = _default_configs()
            for config in configs:
                config.save(using=self.using)

        logger.info(f"Severity configs reset to defaults by {user}")
        return configs
