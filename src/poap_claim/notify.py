"""Notifiers - hand loop notifications to whatever is presenting the claim."""

from __future__ import annotations

import logging

from poap_claim.models.records import Notification

log = logging.getLogger(__name__)


class LogNotifier:
    """Writes notifications to the log (used by the CLI)."""

    def notify(self, notification: Notification) -> None:
        level = logging.ERROR if notification.severity == "error" else logging.INFO
        log.log(level, "%s %s", notification.title, notification.description)


class CollectingNotifier:
    """Keeps notifications in memory until the presentation layer drains them."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def drain(self) -> list[Notification]:
        pending, self.notifications = self.notifications, []
        return pending
