from django.http import Http404
from django.test import SimpleTestCase
from rest_framework.exceptions import NotAuthenticated, ValidationError

from core.exception_handler import warehouse_exception_handler
from core.exceptions import (
    ConflictException, ForbiddenException, InvalidTransitionException,
    NotFoundException, ValidationException
)


class ExceptionHandlerTest(SimpleTestCase):

    def handle(self, exc):
        return warehouse_exception_handler(exc, {"view": None})

    def test_business_exceptions_map_to_status(self):
        cases = [
            (ValidationException("Bad quantity"), 400, "VALIDATION_ERROR"),
            (NotFoundException("Order", "SO1"), 404, "NOT_FOUND"),
            (ConflictException("Busy", code="ORDER_ALREADY_CLAIMED"), 409, "ORDER_ALREADY_CLAIMED"),
            (InvalidTransitionException("PENDING", "SHIPPED"), 409, "INVALID_TRANSITION"),
            (ForbiddenException("Nope"), 403, "FORBIDDEN"),
        ]
        for exc, status_code, code in cases:
            with self.subTest(code=code):
                response = self.handle(exc)
                self.assertEqual(response.status_code, status_code)
                self.assertEqual(response.data["code"], code)
                self.assertEqual(response.data["error"], exc.message)

    def test_details_are_included_when_present(self):
        response = self.handle(NotFoundException("Order", "SO1"))
        self.assertEqual(response.data["details"], {"resource": "Order", "id": "SO1"})

        response = self.handle(ConflictException("Busy"))
        self.assertNotIn("details", response.data)

    def test_serializer_errors_become_validation_errors(self):
        response = self.handle(ValidationError({"quantity": ["A valid integer is required."]}))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "VALIDATION_ERROR")
        self.assertEqual(response.data["error"], "A valid integer is required.")

    def test_framework_errors_keep_status(self):
        self.assertEqual(self.handle(Http404()).data["code"], "NOT_FOUND")
        response = self.handle(NotAuthenticated())
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data["code"], "UNAUTHORIZED")

    def test_unexpected_errors_are_hidden(self):
        with self.assertLogs("core.exception_handler", level="ERROR"):
            response = self.handle(RuntimeError("boom"))

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data, {"error": "Internal server error", "code": "INTERNAL_ERROR"})
