"""Dispatcher WebSocket consumer: live feed of load and blast events."""

from .base import BaseConsumer
from realtime.notifications import DISPATCHERS_GROUP


class DispatcherConsumer(BaseConsumer):
    """
    WebSocket consumer for dispatchers.

    Every dispatcher joins the shared ``dispatchers`` group and receives
    dispatch_event messages (status changes, arrivals, blast outcomes,
    SLA alerts, live driver positions).
    """

    allowed_role = "dispatcher"

    async def on_connect(self):
        await self._join_group(DISPATCHERS_GROUP)
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Dispatcher connected successfully",
        })

    async def handle_message(self, msg_type, data):
        if msg_type == "ping":
            await self.send_success("pong")
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    async def dispatch_event(self, event):
        """Forward a load/blast event to the dashboard."""
        payload = {key: value for key, value in event.items() if key != "type"}
        await self.send_json({"type": "dispatch_event", **payload})
