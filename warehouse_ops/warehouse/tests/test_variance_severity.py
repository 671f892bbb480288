"""
Tests for stock count variance severity bands.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from core.exceptions import ConflictException, NotFoundException
from warehouse.models import VarianceSeverityConfig
from warehouse.services.variance_service import VarianceSeverityService, variance_percent


class VariancePercentTest(TestCase):
    def test_relative_to_expected(self):
        self.assertEqual(variance_percent(20, 18), Decimal("10.00"))
        self.assertEqual(variance_percent(3, 4), Decimal("33.33"))
        self.assertEqual(variance_percent(10, 10), Decimal("0.00"))

    def test_stock_where_none_expected(self):
        self.assertEqual(variance_percent(0, 5), Decimal("100.00"))
        self.assertEqual(variance_percent(0, 0), Decimal("0.00"))


class VarianceSeverityServiceTest(TestCase):
    def setUp(self):
        self.service = VarianceSeverityService()

    def test_defaults_apply_before_configuration(self):
        self.assertEqual(self.service.classify(Decimal("1.5"))["severity"], "LOW")
        self.assertTrue(self.service.classify(Decimal("1.5"))["can_auto_adjust"])
        self.assertEqual(self.service.classify(Decimal("4"))["severity"], "MEDIUM")
        self.assertEqual(self.service.classify(Decimal("7"))["severity"], "HIGH")
        self.assertEqual(self.service.classify(Decimal("250"))["severity"], "CRITICAL")

    def test_boundary_belongs_to_lower_band(self):
        self.assertEqual(self.service.classify(Decimal("2"))["severity"], "LOW")
        self.assertEqual(self.service.classify(Decimal("10"))["severity"], "HIGH")

    def test_negative_percentages_use_magnitude(self):
        self.assertEqual(self.service.classify(Decimal("-7"))["severity"], "HIGH")

    def test_uncovered_variance_is_critical(self):
        self.service.create_config(
            {"severity_level": "LOW", "min_variance_percent": Decimal("0"), "max_variance_percent": Decimal("5")}
        )
        result = self.service.classify(Decimal("50"))
        self.assertEqual(result["severity"], "CRITICAL")
        self.assertTrue(result["requires_manager_approval"])
        self.assertFalse(result["can_auto_adjust"])

    def test_overlapping_band_is_rejected(self):
        self.service.reset_to_defaults()
        with self.assertRaises(ConflictException) as ctx:
            self.service.create_config(
                {"severity_level": "HIGH", "min_variance_percent": Decimal("3"), "max_variance_percent": Decimal("6")}
            )
        self.assertEqual(ctx.exception.code, "SEVERITY_RANGE_OVERLAP")

    def test_deactivated_band_frees_its_range(self):
        self.service.reset_to_defaults()
        self.service.deactivate_config("severity-high")
        self.assertEqual(self.service.classify(Decimal("7"))["severity"], "CRITICAL")

        config = self.service.create_config(
            {"severity_level": "MEDIUM", "min_variance_percent": Decimal("5"), "max_variance_percent": Decimal("10")}
        )
        self.assertEqual(config.color_code, "#F59E0B")
        self.assertEqual(self.service.classify(Decimal("7"))["severity"], "MEDIUM")

    def test_update_checks_overlap(self):
        self.service.reset_to_defaults()
        with self.assertRaises(ConflictException):
            self.service.update_config("severity-low", {"max_variance_percent": Decimal("4")})

        config = self.service.update_config("severity-low", {"auto_adjust": False})
        self.assertFalse(config.auto_adjust)

    def test_unknown_config(self):
        with self.assertRaises(NotFoundException):
            self.service.get_config("VSC-NOPE")

    def test_reset_replaces_configuration(self):
        self.service.create_config(
            {"severity_level": "LOW", "min_variance_percent": Decimal("0"), "max_variance_percent": Decimal("1")}
        )
        self.service.reset_to_defaults()
        self.assertEqual(
            list(VarianceSeverityConfig.objects.values_list("severity_level", flat=True)),
            ["LOW", "MEDIUM", "HIGH", "CRITICAL"],
        )


class VarianceSeverityAPITest(APITestCase):
    base = "/api/v1/variance-severity"

    def setUp(self):
        User = get_user_model()
        self.controller = User.objects.create_user(username="controller", password="testpass123", role="stock_controller")
        self.supervisor = User.objects.create_user(username="supervisor", password="testpass123", role="supervisor")

    def test_controller_classifies_but_cannot_configure(self):
        self.client.force_authenticate(self.controller)
        response = self.client.get(f"{self.base}/classify", {"variance_percent": "4.5"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["severity"], "MEDIUM")

        response = self.client.post(
            self.base, {"severity_level": "LOW", "min_variance_percent": "0", "max_variance_percent": "1"}
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_classify_requires_a_number(self):
        self.client.force_authenticate(self.controller)
        response = self.client.get(f"{self.base}/classify", {"variance_percent": "lots"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_supervisor_manages_bands(self):
        self.client.force_authenticate(self.supervisor)
        response = self.client.post(f"{self.base}/reset")
        self.assertEqual(len(response.data), 4)

        response = self.client.patch(f"{self.base}/severity-critical", {"requires_manager_approval": True})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["requires_manager_approval"])

        response = self.client.delete(f"{self.base}/severity-low")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = self.client.get(self.base)
        self.assertEqual([c["severity_level"] for c in response.data], ["MEDIUM", "HIGH", "CRITICAL"])

    def test_reversed_band_is_rejected(self):
        self.client.force_authenticate(self.supervisor)
        response = self.client.post(
            self.base, {"severity_level": "LOW", "min_variance_percent": "5", "max_variance_percent": "1"}
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
