"""Outbound partner notifications.

No delivery provider is wired yet: messages are written to the log so the
approval flows can call these helpers unconditionally.
"""

import logging

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, text: str = "") -> None:
    logger.info("Email to=%s subject=%s body=%s", to, subject, text)


def send_sms(to: str, message: str) -> None:
    logger.info("SMS to=%s message=%s", to, message)
