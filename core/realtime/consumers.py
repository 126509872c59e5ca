import json
import logging

from asgiref.sync import async_to_sync
from channels.generic.websocket import AsyncWebsocketConsumer
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

GROUP = "updates"


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes appointment changes and cache refresh notices to staff screens."""

    async def connect(self):
        await self.channel_layer.group_add(GROUP, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "message": "connected"}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(GROUP, self.channel_name)

    async def broadcast_refresh(self, event):
        # event: {"type": "broadcast.refresh", "version": int, "ts": "...", "keys": [...]}
        await self.send(json.dumps(event))

    async def appointment_changed(self, event):
        # event: {"type": "appointment.changed", "appointmentId", "branchId", "status"}
        await self.send(json.dumps(event))


def broadcast(event: dict) -> None:
    """Send an event to every connected client; no-op without a channel layer."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    try:
        async_to_sync(channel_layer.group_send)(GROUP, event)
    except Exception:
        logger.warning("broadcast of %s failed", event.get("type"), exc_info=True)
