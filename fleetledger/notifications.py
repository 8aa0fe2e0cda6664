"""Mini README: Best-effort notifications for managers and drivers.

Structure:
    * Notification - dataclass describing one outbound message.
    * Notifier - abstract delivery channel.
    * LoggingNotifier - default channel that writes to the log.
    * RecordingNotifier - keeps messages in memory for inspection.
    * notify_safely - sends and swallows delivery failures.

Delivery happens only after the ledger or status mutation committed, and a
failing channel is logged rather than raised, so a broken mail relay can
never undo a balance change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .logging_utils import get_logger

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class Notification:
    """Single outbound notification."""

    organisation_id: str
    topic: str
    summary: str
    details: Dict[str, object] = field(default_factory=dict)


class Notifier(ABC):
    """Base interface for notification channels."""

    channel_name: str = "generic"

    @abstractmethod
    def send(self, notification: Notification) -> None:
        """Deliver the notification or raise on failure."""


class LoggingNotifier(Notifier):
    """Channel that records notifications in the application log."""

    channel_name = "log"

    def send(self, notification: Notification) -> None:
        LOGGER.info(
            "Notify org=%s topic=%s: %s",
            notification.organisation_id,
            notification.topic,
            notification.summary,
        )


class RecordingNotifier(Notifier):
    """Channel that keeps every notification in memory."""

    channel_name = "memory"

    def __init__(self) -> None:
        self.sent: List[Notification] = []

    def send(self, notification: Notification) -> None:
        self.sent.append(notification)


def notify_safely(notifier: Optional[Notifier], notification: Notification) -> bool:
    """Send through ``notifier``; return ``False`` instead of raising on failure."""

    if notifier is None:
        return False
    try:
        notifier.send(notification)
    except Exception:  # noqa: BLE001 - delivery must never break the caller
        LOGGER.warning(
            "Notification via %s failed for topic=%s",
            notifier.channel_name,
            notification.topic,
            exc_info=True,
        )
        return False
    return True
