"""Realtime notification adapter — pushes notifications to connected users.

``ConnectionRegistry`` tracks which live connections belong to which user and
role. It is created once at bootstrap and handed to ``RealtimeNotifier``;
nothing here is module-global, so two marketplaces (or two tests) never share
sockets.

A connection is any object with ``emit(event_name, payload)``.
"""

import threading
from uuid import uuid4

import structlog

from marketplace.notification.port import NotificationEvent, NotificationPort, role_audience
from marketplace.notification.templates import render
from marketplace.utils.clock import utcnow

logger = structlog.get_logger(__name__)

NOTIFICATION_CHANNEL = "notification"


class ConnectionRegistry:
    """Rooms of live connections, keyed by user id and by role audience."""

    def __init__(self):
        self._rooms: dict[str, list] = {}
        self._lock = threading.Lock()

    def _join(self, room: str, connection) -> None:
        members = self._rooms.setdefault(room, [])
        if connection not in members:
            members.append(connection)

    def connect(self, user_id: str, connection, role: str | None = None) -> None:
        with self._lock:
            self._join(str(user_id), connection)
            if role:
                self._join(role_audience(role), connection)
        logger.debug("User connected", user_id=str(user_id), role=role)

    def disconnect(self, connection) -> None:
        with self._lock:
            for room, members in list(self._rooms.items()):
                if connection in members:
                    members.remove(connection)
                    if not members:
                        del self._rooms[room]

    def connections_for(self, recipient: str) -> list:
        with self._lock:
            return list(self._rooms.get(str(recipient), []))

    def is_online(self, user_id: str) -> bool:
        return bool(self.connections_for(user_id))


class RealtimeNotifier(NotificationPort):
    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def publish(self, event: NotificationEvent) -> dict:
        notification_id = f"ntf-{uuid4().hex[:12]}"
        connections = self.registry.connections_for(event.recipient_id)
        if not connections:
            logger.debug(
                "Recipient offline, notification not pushed",
                recipient_id=event.recipient_id,
                type=event.type.value,
            )
            return {"notification_id": notification_id, "status": "queued"}

        payload = {
            "id": notification_id,
            "type": event.type.value,
            "recipient_id": event.recipient_id,
            "order_id": event.order_id,
            "product_id": event.product_id,
            "metadata": event.metadata,
            "created_at": utcnow().isoformat(),
            **render(event),
        }
        for connection in connections:
            connection.emit(NOTIFICATION_CHANNEL, payload)
        return {"notification_id": notification_id, "status": "sent"}
