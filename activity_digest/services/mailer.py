"""Outbound message senders used by the delivery dispatcher."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Dict, Protocol

from ..config import DeliveryConfig

LOGGER = logging.getLogger("digest.mailer")


class MessageSender(Protocol):
    def send(self, recipient: str, subject: str, body: str, headers: Dict[str, str]) -> bool:
        ...


class LogSender:
    """Writes messages to the log instead of sending them."""

    def send(self, recipient: str, subject: str, body: str, headers: Dict[str, str]) -> bool:
        LOGGER.info("Digest for %s: %s (%s bytes)", recipient, subject, len(body))
        return True


class SmtpSender:
    def __init__(self, config: DeliveryConfig) -> None:
        self.config = config

    def _message(
        self, recipient: str, subject: str, body: str, headers: Dict[str, str]
    ) -> EmailMessage:
        message = EmailMessage()
        message["To"] = recipient
        message["Subject"] = subject
        for name, value in headers.items():
            if name.lower() == "content-type":
                continue
            message[name] = value
        message.set_content("This digest is best viewed in an HTML capable client.")
        message.add_alternative(body, subtype="html")
        return message

    def send(self, recipient: str, subject: str, body: str, headers: Dict[str, str]) -> bool:
        message = self._message(recipient, subject, body, headers)
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30) as smtp:
            if self.config.smtp_use_tls:
                smtp.starttls()
            if self.config.smtp_user:
                smtp.login(self.config.smtp_user, self.config.smtp_password)
            refused = smtp.send_message(message)
        if refused:
            LOGGER.warning("SMTP server refused %s: %s", recipient, refused)
            return False
        return True


def build_sender(config: DeliveryConfig) -> MessageSender:
    if config.transport == "smtp":
        return SmtpSender(config)
    return LogSender()
