"""
Shared fixtures for order fulfillment tests.
"""

from decimal import Decimal
from django.contrib.auth import get_user_model

from products.models import Sku
from warehouse.models import BinLocation, InventoryUnit

from ..services import OrderService, PackingService


class RecordingPublisher:
    """Event publisher that records calls instead of deferring them."""

    def __init__(self):
        self.broadcasts = []
        self.notifications = []

    def broadcast(self, event, data):
        self.broadcasts.append((event, data))

    def notify(self, user, notification_type, title, message, data=None, **kwargs):
        self.notifications.append((user, notification_type))

    def events(self):
        return [event for event, _ in self.broadcasts]


class FulfillmentFixtures:
    """Mixin creating users, stock and services for a TestCase."""

    def setUp(self):
        User = get_user_model()
        self.picker = User.objects.create_user(username='picker', password='testpass123', role='picker')
        self.other_picker = User.objects.create_user(username='picker2', password='testpass123', role='picker')
        self.packer = User.objects.create_user(username='packer', password='testpass123', role='packer')
        self.supervisor = User.objects.create_user(
            username='supervisor', password='testpass123', role='supervisor'
        )

        self.bin_a = BinLocation.objects.create(bin_id='A-01-01', zone='A', aisle='01', shelf='01')
        self.bin_b = BinLocation.objects.create(bin_id='B-02-03', zone='B', aisle='02', shelf='03')
        self.sku1 = Sku.objects.create(
            sku='SKU-001', name='Widget', barcode='0001112223334', unit_price=Decimal('25.50')
        )
        self.sku2 = Sku.objects.create(sku='SKU-002', name='Gadget', unit_price=Decimal('15.75'))
        self.unit1 = InventoryUnit.objects.create(sku=self.sku1, bin_location=self.bin_a, quantity=50)
        self.unit2 = InventoryUnit.objects.create(sku=self.sku2, bin_location=self.bin_b, quantity=20)

        self.events = RecordingPublisher()
        self.orders = OrderService(events=self.events)
        self.packing = PackingService(events=self.events)

    def make_order(self, *items, priority='NORMAL'):
        items = items or (('SKU-001', 10),)
        return self.orders.create_order({
            'customer_id': 'CUST-1',
            'customer_name': 'Acme Ltd',
            'priority': priority,
            'items': [{'sku': sku, 'quantity': qty} for sku, qty in items],
        }, self.supervisor)

    def task_for(self, order, sku='SKU-001'):
        return order.pick_tasks.get(sku=sku)

    def pick_all(self, order):
        for task in order.pick_tasks.all():
            self.orders.pick_item(order.order_id, {
                'pick_task_id': task.pick_task_id,
                'sku': task.sku,
                'bin_location': task.target_bin,
                'quantity': task.quantity,
            }, self.picker)
