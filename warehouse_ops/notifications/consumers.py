import json

from channels.generic.websocket import AsyncWebsocketConsumer

from notifications.events import EVENTS_GROUP


class WarehouseEventsConsumer(AsyncWebsocketConsumer):
    """
    Pushes warehouse events to authenticated clients.

    Events: pick-updated, pick-completed, order-claimed, order-completed,
    order-cancelled, zone-assignment.
    """

    async def connect(self):
        user = self.scope.get("user")
        if not getattr(user, "is_authenticated", False):
            await self.close(code=4003)
            return
        await self.channel_layer.group_add(EVENTS_GROUP, self.channel_name)
        await self.accept()

    async def disconnect(self, code):
        await self.channel_layer.group_discard(EVENTS_GROUP, self.channel_name)

    async def warehouse_event(self, event):
        await self.send(text_data=json.dumps(event["data"], default=str))
