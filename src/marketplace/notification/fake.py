"""Fake notifier — records published notifications for testing."""

from uuid import uuid4

from marketplace.notification.port import NotificationEvent, NotificationPort, NotificationType


class FakeNotifier(NotificationPort):
    """Notifier that keeps events in memory for test assertions."""

    def __init__(self):
        self.published: list[NotificationEvent] = []
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Notification delivery failed"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def publish(self, event: NotificationEvent) -> dict:
        if not self.should_succeed:
            raise ConnectionError(self.failure_reason)

        self.published.append(event)
        return {"notification_id": f"ntf-{uuid4().hex[:12]}", "status": "sent"}

    def of_type(self, notification_type: NotificationType) -> list[NotificationEvent]:
        return [event for event in self.published if event.type == notification_type]

    def reset(self):
        """Clear published events (useful between tests)."""
        self.published.clear()
        self.should_succeed = True
        self.failure_reason = "Notification delivery failed"
