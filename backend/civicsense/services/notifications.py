"""Notification hook invoked when a report changes escalation level."""

from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

logger = logging.getLogger(__name__)


class EscalationNotifier(Protocol):
    def notify(self, report_id: UUID, new_level: int) -> None: ...


class LoggingNotifier:
    """Default sink: records the notice in the service log only."""

    def notify(self, report_id: UUID, new_level: int) -> None:
        logger.info("Escalation notice: report %s reached level %s", report_id, new_level)


default_notifier = LoggingNotifier()
