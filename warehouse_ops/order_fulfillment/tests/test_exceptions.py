"""
Tests for order exception logging and resolution.
"""

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from warehouse.models import InventoryTransaction

from ..exceptions import ConflictException, NotFoundException, ValidationException
from ..models import ExceptionStatus, OrderException, OrderStatus
from ..services import ExceptionService
from .helpers import FulfillmentFixtures


class ExceptionServiceTest(FulfillmentFixtures, TestCase):

    def setUp(self):
        super().setUp()
        self.exceptions = ExceptionService(events=self.events, orders=self.orders)
        self.order = self.make_order(('SKU-001', 10), ('SKU-002', 5))

    def log(self, **overrides):
        data = {
            'order_id': self.order.order_id,
            'sku': 'SKU-001',
            'type': 'DAMAGE',
            'quantity_expected': 10,
            'quantity_actual': 7,
            'reason': 'Crushed carton',
        }
        data.update(overrides)
        data = {key: value for key, value in data.items() if value is not None}
        return self.exceptions.log_exception(data, self.picker)

    def test_log_computes_shortfall(self):
        exception = self.log()

        self.assertTrue(exception.exception_id.startswith('EXC-'))
        self.assertEqual(exception.status, ExceptionStatus.OPEN)
        self.assertEqual(exception.quantity_short, 3)
        self.assertEqual(exception.order_item.sku, 'SKU-001')
        self.assertIn('exception-reported', self.events.events())

    def test_quantities_default_from_order_line(self):
        exception = self.log(sku='SKU-002', type='OUT_OF_STOCK', quantity_expected=None, quantity_actual=None)
        self.assertEqual(exception.quantity_expected, 5)
        self.assertEqual(exception.quantity_short, 5)

    def test_backorder_short_pick_starts_in_review(self):
        exception = self.log(type='SHORT_PICK_BACKORDER')
        self.assertEqual(exception.status, ExceptionStatus.REVIEWING)

    def test_sku_must_be_on_order(self):
        with self.assertRaises(ValidationException):
            self.log(sku='SKU-404')
        with self.assertRaises(NotFoundException):
            self.log(order_id='SO0000000000')

    def test_actual_cannot_exceed_expected(self):
        with self.assertRaises(ValidationException):
            self.log(quantity_actual=11)

    def test_cancel_order_resolution_cancels_and_releases(self):
        exception = self.log()
        resolved = self.exceptions.resolve_exception(
            exception.exception_id, {'resolution': 'CANCEL_ORDER', 'notes': 'Customer agreed'}, self.supervisor
        )

        self.assertEqual(resolved.status, ExceptionStatus.RESOLVED)
        self.assertEqual(resolved.resolved_by, self.supervisor)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, OrderStatus.CANCELLED)
        self.assertIn(exception.exception_id, self.order.cancel_reason)
        self.unit1.refresh_from_db()
        self.assertEqual(self.unit1.reserved, 0)
        self.assertIn((self.picker, 'EXCEPTION_RESOLVED'), self.events.notifications)

    def test_write_off_removes_short_quantity(self):
        exception = self.log()
        self.exceptions.resolve_exception(exception.exception_id, {'resolution': 'WRITE_OFF'}, self.supervisor)

        self.unit1.refresh_from_db()
        self.assertEqual(self.unit1.quantity, 47)
        self.assertEqual(self.unit1.reserved, 10)
        txn = InventoryTransaction.objects.get(type='ADJUSTMENT')
        self.assertEqual(txn.quantity, -3)
        self.assertIn(exception.exception_id, txn.reason)

    def test_substitute_requires_catalog_sku(self):
        exception = self.log(type='OUT_OF_STOCK')
        with self.assertRaises(ValidationException):
            self.exceptions.resolve_exception(exception.exception_id, {'resolution': 'SUBSTITUTE'}, self.supervisor)
        with self.assertRaises(NotFoundException):
            self.exceptions.resolve_exception(
                exception.exception_id, {'resolution': 'SUBSTITUTE', 'substitute_sku': 'SKU-404'}, self.supervisor
            )

        resolved = self.exceptions.resolve_exception(
            exception.exception_id, {'resolution': 'SUBSTITUTE', 'substitute_sku': 'SKU-002'}, self.supervisor
        )
        self.assertEqual(resolved.substitute_sku, 'SKU-002')

    def test_resolution_is_final(self):
        exception = self.log()
        self.exceptions.resolve_exception(exception.exception_id, {'resolution': 'MANUAL_OVERRIDE'}, self.supervisor)

        with self.assertRaises(ConflictException) as ctx:
            self.exceptions.resolve_exception(exception.exception_id, {'resolution': 'WRITE_OFF'}, self.supervisor)
        self.assertEqual(ctx.exception.code, 'EXCEPTION_RESOLVED')

    def test_failed_resolution_rolls_back(self):
        exception = self.log()
        self.orders.cancel_order(self.order.order_id, self.supervisor)
        self.unit1.quantity = 2
        self.unit1.save()

        with self.assertRaises(ConflictException):
            self.exceptions.resolve_exception(exception.exception_id, {'resolution': 'WRITE_OFF'}, self.supervisor)
        exception.refresh_from_db()
        self.assertEqual(exception.status, ExceptionStatus.OPEN)

    def test_open_list_and_summary(self):
        first = self.log()
        self.log(sku='SKU-002', type='WRONG_ITEM', quantity_expected=5, quantity_actual=5)
        self.exceptions.resolve_exception(first.exception_id, {'resolution': 'CONTACT_CUSTOMER'}, self.supervisor)

        self.assertEqual([e.sku for e in self.exceptions.get_open_exceptions()], ['SKU-002'])
        self.assertEqual(self.exceptions.get_exceptions(exception_type='DAMAGE').count(), 1)
        summary = self.exceptions.get_summary()
        self.assertEqual(summary['total'], 2)
        self.assertEqual(summary['open'], 1)
        self.assertEqual(summary['resolved'], 1)
        self.assertEqual(summary['by_type'], {'DAMAGE': 1, 'WRONG_ITEM': 1})


class OrderExceptionAPITest(FulfillmentFixtures, APITestCase):
    base = '/api/v1/exceptions'

    def setUp(self):
        super().setUp()
        self.order = self.make_order(('SKU-001', 10))

    def report(self):
        return self.client.post(self.base, {
            'order_id': self.order.order_id,
            'sku': 'SKU-001',
            'type': 'SHORT_PICK',
            'quantity_actual': 8,
            'reason': 'Only 8 in bin',
        }, format='json')

    def test_picker_reports_and_supervisor_resolves(self):
        self.client.force_authenticate(self.picker)
        response = self.report()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['quantity_short'], 2)
        self.assertEqual(response.data['order_id'], self.order.order_id)
        exception_id = response.data['exception_id']

        response = self.client.post(f'{self.base}/{exception_id}/resolve', {'resolution': 'BACKORDER'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.supervisor)
        response = self.client.post(f'{self.base}/{exception_id}/resolve', {'resolution': 'BACKORDER'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'RESOLVED')
        self.assertEqual(response.data['resolved_by_name'], 'supervisor')

    def test_list_filters_and_lookups(self):
        self.client.force_authenticate(self.picker)
        exception_id = self.report().data['exception_id']

        response = self.client.get(self.base, {'order_id': self.order.order_id})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(self.base, {'status': 'RESOLVED'})
        self.assertEqual(response.data['count'], 0)
        response = self.client.get(f'{self.base}/open')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'{self.base}/summary')
        self.assertEqual(response.data['by_type'], {'SHORT_PICK': 1})

        response = self.client.get(f'{self.base}/{exception_id}')
        self.assertEqual(response.data['sku'], 'SKU-001')
        response = self.client.get(f'{self.base}/EXC-NOPE')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_type_is_rejected(self):
        self.client.force_authenticate(self.picker)
        response = self.client.post(self.base, {
            'order_id': self.order.order_id, 'sku': 'SKU-001', 'type': 'LOST', 'reason': 'x',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(OrderException.objects.exists())
