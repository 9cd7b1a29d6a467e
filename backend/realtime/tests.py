from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.test import TransactionTestCase
from rest_framework_simplejwt.tokens import AccessToken

from loads.tests.factories import PICKUP, in_minutes, make_assigned_load, make_dispatcher, make_driver, make_load, north_of
from services.dispatch import create_blast
from .middleware import JWTAuthMiddleware
from .notifications import DISPATCHERS_GROUP, user_group
from .routing import websocket_urlpatterns

application = JWTAuthMiddleware(URLRouter(websocket_urlpatterns))


def socket_for(path, user=None):
    if user is not None:
        path = f"{path}?token={AccessToken.for_user(user)}"
    return WebsocketCommunicator(application, path)


async def receive_until(communicator, message_type, limit=5):
    """Skip pushes that may arrive first and return the first message of ``message_type``."""
    for _ in range(limit):
        message = await communicator.receive_json_from(timeout=2)
        if message["type"] == message_type:
            return message
    raise AssertionError(f"No {message_type} message received")


class SocketAuthTests(TransactionTestCase):
    def setUp(self):
        self.dispatcher = make_dispatcher()
        self.driver = make_driver("maria", north_of(PICKUP, 1))

    async def test_anonymous_socket_is_refused(self):
        communicator = socket_for("/ws/driver/")

        connected, _ = await communicator.connect()

        self.assertFalse(connected)

    async def test_bad_token_is_refused(self):
        communicator = WebsocketCommunicator(application, "/ws/dispatcher/?token=not-a-jwt")

        connected, _ = await communicator.connect()

        self.assertFalse(connected)

    async def test_driver_cannot_open_dispatcher_socket(self):
        communicator = socket_for("/ws/dispatcher/", self.driver.user)

        connected, _ = await communicator.connect()

        self.assertFalse(connected)


class DispatcherSocketTests(TransactionTestCase):
    def setUp(self):
        self.dispatcher = make_dispatcher()

    async def test_dispatcher_receives_load_events(self):
        communicator = socket_for("/ws/dispatcher/", self.dispatcher)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        self.assertEqual((await communicator.receive_json_from())["type"], "connection_established")

        await communicator.send_json_to({"type": "ping"})
        self.assertEqual((await communicator.receive_json_from())["type"], "pong")

        await get_channel_layer().group_send(DISPATCHERS_GROUP, {
            "type": "dispatch_event",
            "event": "blast_expired",
            "load_id": 42,
            "status": "pending",
            "driver_id": None,
            "message": "Blast #7 expired with no driver accepting",
        })
        event = await communicator.receive_json_from()

        self.assertEqual(event["type"], "dispatch_event")
        self.assertEqual(event["event"], "blast_expired")
        self.assertEqual(event["load_id"], 42)

        await communicator.disconnect()


class DriverSocketTests(TransactionTestCase):
    def setUp(self):
        self.driver = make_driver("maria", north_of(PICKUP, 3))

    async def _connect(self):
        communicator = socket_for("/ws/driver/", self.driver.user)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)
        await communicator.receive_json_from()
        return communicator

    async def test_push_reaches_personal_group(self):
        communicator = await self._connect()

        await get_channel_layer().group_send(user_group(self.driver.user_id), {
            "type": "push_notification",
            "title": "New load available",
            "body": "Load PHX-1001 is 3.0 mi away.",
            "metadata": {"kind": "blast_offer", "blast_id": 1},
        })
        message = await communicator.receive_json_from()

        self.assertEqual(message["type"], "notification")
        self.assertEqual(message["title"], "New load available")
        self.assertEqual(message["metadata"]["kind"], "blast_offer")

        await communicator.disconnect()

    async def test_location_update_reports_geofence_arrival(self):
        await database_sync_to_async(make_assigned_load)(self.driver)
        communicator = await self._connect()

        await communicator.send_json_to({
            "type": "driver_location_update",
            "latitude": PICKUP[0],
            "longitude": PICKUP[1],
            "accuracy": 7.5,
        })
        ack = await receive_until(communicator, "location_ack")

        self.assertEqual(ack["geofence_event"], "arrived_pickup")

        await communicator.disconnect()

    async def test_invalid_location_is_an_error(self):
        communicator = await self._connect()

        await communicator.send_json_to({"type": "driver_location_update", "latitude": 200})
        message = await communicator.receive_json_from()

        self.assertEqual(message["type"], "error")
        self.assertIn("longitude", message["errors"])

        await communicator.disconnect()


class DriverBlastSocketTests(TransactionTestCase):
    def setUp(self):
        self.driver = make_driver("maria", north_of(PICKUP, 3))
        self.blast = create_blast(make_load().id, radius_miles=10, expires_at=in_minutes(15))

    async def test_accept_over_socket(self):
        communicator = socket_for("/ws/driver/", self.driver.user)
        connected, _ = await communicator.connect()
        self.assertTrue(connected)

        await communicator.send_json_to({"type": "blast_response", "blast_id": self.blast.id, "action": "accept"})
        result = await receive_until(communicator, "blast_response_result")

        self.assertTrue(result["success"])
        self.assertEqual(result["outcome"], "assigned")

        await communicator.disconnect()

    async def test_missing_action_is_an_error(self):
        communicator = socket_for("/ws/driver/", self.driver.user)
        await communicator.connect()
        await communicator.receive_json_from()

        await communicator.send_json_to({"type": "blast_response", "blast_id": self.blast.id})
        message = await communicator.receive_json_from()

        self.assertEqual(message["type"], "error")

        await communicator.disconnect()
