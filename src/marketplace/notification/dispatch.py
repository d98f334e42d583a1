"""Best-effort notification dispatch.

Called only after the triggering change has committed. A failing adapter is
logged and otherwise ignored: notifications never change a core outcome.
"""

import structlog

from marketplace.notification.port import NotificationEvent, NotificationPort

logger = structlog.get_logger(__name__)


def dispatch(port: NotificationPort | None, events: list[NotificationEvent]) -> int:
    """Publish each event; returns how many were accepted by the adapter."""
    if port is None:
        return 0

    delivered = 0
    for event in events:
        try:
            result = port.publish(event)
        except Exception as exc:
            logger.warning(
                "Notification dispatch failed",
                type=event.type.value,
                recipient_id=event.recipient_id,
                error=str(exc),
            )
            continue

        if result.get("status") == "failed":
            logger.warning(
                "Notification rejected by adapter",
                type=event.type.value,
                recipient_id=event.recipient_id,
                error=result.get("error"),
            )
            continue
        delivered += 1
    return delivered
