from __future__ import annotations

from channels.generic.websocket import AsyncJsonWebsocketConsumer


class OrdersConsoleConsumer(AsyncJsonWebsocketConsumer):
    """
    Operator console feed: order number, status and payment status only.
    Staff sessions only; clients re-fetch details over REST.
    """

    GROUP = "orders_console"

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated and user.is_staff):
            await self.close(code=4403)
            return
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def order_event(self, event):
        await self.send_json(event.get("data", {}))
