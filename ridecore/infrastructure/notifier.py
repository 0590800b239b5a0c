"""
Outbound notification egress (push / SMS / email).

Delivery technology lives outside this service; the controller only needs
``send``.  ``LoggingNotifier`` is the default wiring and records what
would have been sent.
"""

from __future__ import annotations

import logging
import uuid
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, recipient_id: uuid.UUID, subject: str, body: str) -> None: ...


class LoggingNotifier:
    async def send(self, recipient_id: uuid.UUID, subject: str, body: str) -> None:
        logger.info("Notify %s: %s -- %s", recipient_id, subject, body)
