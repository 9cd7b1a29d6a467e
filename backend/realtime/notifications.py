"""
Notification helpers for sending WebSocket messages to connected clients.

Delivery is fire-and-forget: every helper swallows (and logs) transport
failures so a broken channel layer can never fail a dispatch decision.

- send_push(): push a titled message to a set of users (user_<id> groups)
- notify_dispatchers(): broadcast a load event to the dispatchers group
- queue_*(): the same, deferred until the surrounding transaction commits
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)

DISPATCHERS_GROUP = "dispatchers"


def user_group(user_id: int) -> str:
    return f"user_{user_id}"


def _group_send(group: str, payload: Dict[str, Any]) -> bool:
    try:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning("No channel layer configured; dropped %s for %s", payload.get("type"), group)
            return False
        async_to_sync(channel_layer.group_send)(group, payload)
        return True
    except Exception:
        logger.exception("Failed to deliver %s to %s", payload.get("type"), group)
        return False


# ---------------------- Push Notifications ----------------------

def send_push(
    recipient_ids: Iterable[int],
    title: str,
    body: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> int:
    """
    Push a notification to each recipient's personal group: user_<id>

    Args:
        recipient_ids: User IDs to notify
        title: Short headline
        body: Message text
        metadata: Extra keys for the client (load_id, blast_id, kind...)

    Returns:
        Number of recipients the channel layer accepted
    """
    delivered = 0
    for recipient_id in recipient_ids:
        if not recipient_id:
            continue
        payload = {
            "type": "push_notification",
            "title": title,
            "body": body,
            "metadata": metadata or {},
        }
        if _group_send(user_group(recipient_id), payload):
            delivered += 1

    logger.debug("Push '%s' delivered to %d recipient(s)", title, delivered)
    return delivered


def notify_dispatchers(
    event_type: str,
    load,
    message: str = "",
    extra: Optional[Dict[str, Any]] = None,
) -> bool:
    """
    Broadcast a load event to every connected dispatcher.

    Args:
        event_type: Short event name (load_arrived_pickup, blast_expired...)
        load: Load model instance
        message: Human-readable description
        extra: Additional payload data
    """
    payload = {
        "type": "dispatch_event",
        "event": event_type,
        "load_id": load.id,
        "status": load.status,
        "driver_id": load.driver_id,
        "message": message,
        **(extra or {}),
    }
    return _group_send(DISPATCHERS_GROUP, payload)


# ---------------------- Deferred Delivery ----------------------

def queue_push(
    recipient_ids: Iterable[int],
    title: str,
    body: str,
    metadata: Optional[Dict[str, Any]] = None,
) -> None:
    """Send a push once the current transaction commits (immediately if none)."""
    recipients = list(recipient_ids)
    if not recipients:
        return
    transaction.on_commit(lambda: send_push(recipients, title, body, metadata))


def queue_dispatcher_event(
    event_type: str,
    load,
    message: str = "",
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    transaction.on_commit(lambda: notify_dispatchers(event_type, load, message, extra))
