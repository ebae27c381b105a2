"""Notifier protocol - delivers user-facing notices to the presentation layer."""

from __future__ import annotations

from typing import Protocol

from poap_claim.models.records import Notification


class Notifier(Protocol):

    def notify(self, notification: Notification) -> None:
        ...
