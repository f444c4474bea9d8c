"""
Grade-published notifications.

Fire-and-forget: a notifier never raises. Delivery failures are logged and
the publish operation that triggered them still succeeds.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from loguru import logger

from examgrader.config.settings import Settings, get_settings
from examgrader.core.models import GradePublishedEvent


class GradeNotifier(ABC):
    """Receives GradePublishedEvent once per published grade."""

    async def notify(self, event: GradePublishedEvent) -> None:
        try:
            await self._deliver(event)
        except Exception as e:
            logger.warning(
                f"Grade notification for student {event.student_id} "
                f"(attempt {event.attempt_id}) failed: {e.__class__.__name__}: {e}"
            )

    @abstractmethod
    async def _deliver(self, event: GradePublishedEvent) -> None:
        """Deliver one event. May raise; notify() contains the failure."""


class LoggingNotifier(GradeNotifier):
    """Records events in the log (default when no webhook is configured)."""

    def __init__(self):
        self.sent: List[GradePublishedEvent] = []

    async def _deliver(self, event: GradePublishedEvent) -> None:
        self.sent.append(event)
        logger.info(
            f"Grade published for student {event.student_id}: "
            f"attempt {event.attempt_id}, {event.percentage}%"
        )


class WebhookNotifier(GradeNotifier):
    """POSTs events as JSON to a webhook URL."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def _deliver(self, event: GradePublishedEvent) -> None:
        payload = {
            "type": "grade.published",
            "studentId": event.student_id,
            "attemptId": event.attempt_id,
            "examId": event.exam_id,
            "percentage": event.percentage,
            "publishedAt": event.published_at.isoformat(),
        }
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()
        logger.debug(f"Webhook notified for attempt {event.attempt_id}")


def create_notifier(settings: Optional[Settings] = None) -> GradeNotifier:
    """Webhook notifier when a URL is configured, logging notifier otherwise."""
    settings = settings or get_settings()
    if settings.notification_webhook_url:
        return WebhookNotifier(settings.notification_webhook_url)
    return LoggingNotifier()
