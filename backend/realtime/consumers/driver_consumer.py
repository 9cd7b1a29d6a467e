"""Driver WebSocket consumer for GPS pings and blast responses."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class DriverConsumer(BaseConsumer):
    """
    WebSocket consumer for drivers.

    Handles:
        - Driver location updates (feed the geofence monitor)
        - Blast responses (view / decline / accept)
        - Push notifications (offers, confirmations, arrivals)
    """

    allowed_role = "driver"

    async def on_connect(self):
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Driver connected successfully",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle driver-specific messages."""

        if msg_type == "driver_location_update":
            await self._handle_location_update(data)
        elif msg_type == "blast_response":
            await self._handle_blast_response(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_location_update(self, data: Dict[str, Any]):
        """Store the ping and report any geofence event it triggered."""
        from drivers.serializers import LocationUpdateSerializer

        serializer = LocationUpdateSerializer(data=data)
        if not serializer.is_valid():
            await self.send_error("Invalid driver_location_update", errors=serializer.errors)
            return

        result = await self._update_location_db(serializer.validated_data)
        if result is None:
            await self.send_error("Driver profile not found")
            return

        await self.send_success("location_ack", **result)

    async def _handle_blast_response(self, data: Dict[str, Any]):
        blast_id = data.get("blast_id")
        action = data.get("action")

        if not blast_id or action not in ("view", "decline", "accept"):
            await self.send_error("blast_response requires blast_id and action (view, decline or accept)")
            return

        result = await self._respond_db(int(blast_id), action, data.get("reason", ""))
        await self.send_success("blast_response_result", blast_id=blast_id, action=action, **result)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _update_location_db(self, data: Dict[str, Any]):
        from drivers.models import Driver
        from drivers.services import update_driver_location

        try:
            driver = Driver.objects.get(user_id=self.user_id)
        except Driver.DoesNotExist:
            return None

        location, geofence_event = update_driver_location(
            driver,
            data["latitude"],
            data["longitude"],
            accuracy=data.get("accuracy"),
            speed=data.get("speed"),
            heading=data.get("heading"),
            active_load_id=data.get("active_load_id"),
            recorded_at=data.get("recorded_at"),
        )
        return {
            "recorded_at": location.recorded_at.isoformat(),
            "geofence_event": geofence_event.event_type if geofence_event else None,
        }

    @database_sync_to_async
    def _respond_db(self, blast_id: int, action: str, reason: str) -> Dict[str, Any]:
        from drivers.models import Driver
        from services.dispatch import respond, BlastNotFoundError, OfferNotFoundError

        try:
            driver = Driver.objects.get(user_id=self.user_id)
            result = respond(blast_id, driver, action, reason)
        except Driver.DoesNotExist:
            return {"success": False, "error_code": "driver_not_found", "message": "Driver profile not found"}
        except (BlastNotFoundError, OfferNotFoundError) as e:
            return {"success": False, "error_code": "not_found", "message": str(e)}

        return {
            "success": result.success,
            "outcome": result.outcome,
            "message": result.message,
            "error_code": result.error_code,
        }
