"""
Console notification adapter - Implements NotificationDispatcher protocol.

This module provides a console-based implementation of the domain's
notification port, logging OTPs and welcome messages for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleNotificationDispatcher:
    """
    Implements NotificationDispatcher protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints one-time codes to stdout.
    """

    def send_otp(self, email: str, code: str, purpose: str) -> None:
        """
        Log a one-time code (simulates email delivery).

        Args:
            email: Recipient email address (normalized by domain layer)
            code: Numeric one-time code
            purpose: What the code is for
        """
        logger.info("[OTP] Email: %s Purpose: %s Code: %s", email, purpose, code)

    def send_welcome(self, email: str, name: str, role: str) -> None:
        logger.info("[WELCOME] Email: %s Name: %s Role: %s", email, name, role)
