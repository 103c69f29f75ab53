"""
Email notifications over an authenticated SMTP relay.

Each message opens its own connection: connect, log in, send, disconnect.
Port 465 uses implicit TLS; any other port is upgraded with STARTTLS.
"""

import smtplib
import ssl
from email.message import EmailMessage

from .config import WatchConfig
from .console import StatusReporter

SMTPS_PORT = 465
SMTP_TIMEOUT = 30

TEST_SUBJECT = "SMTP validation Test"
TEST_BODY = "This is a test email to validate SMTP credentials."
NOTICE_BODY = "Domain available! Go get it!"


class NotificationError(Exception):
    """Raised when a message could not be delivered to the relay."""


def build_message(config: WatchConfig, subject: str, body: str) -> EmailMessage:
    """Build a plain-text message from the SMTP user to the configured recipient."""
    message = EmailMessage()
    message["From"] = config.smtp_user
    message["To"] = config.email
    message["Subject"] = subject
    message.set_content(body)
    return message


def availability_notice(config: WatchConfig) -> EmailMessage:
    """The "domain is available" message for config.domain_name."""
    return build_message(config, f"Domain {config.domain_name} is available!", NOTICE_BODY)


def _send(config: WatchConfig, message: EmailMessage) -> None:
    """Deliver one message. Raises NotificationError."""
    context = ssl.create_default_context()

    try:
        if config.smtp_port == SMTPS_PORT:
            smtp = smtplib.SMTP_SSL(
                config.smtp_server, config.smtp_port, timeout=SMTP_TIMEOUT, context=context
            )
        else:
            smtp = smtplib.SMTP(config.smtp_server, config.smtp_port, timeout=SMTP_TIMEOUT)

        with smtp:
            if config.smtp_port != SMTPS_PORT:
                smtp.starttls(context=context)
            smtp.login(config.smtp_user, config.smtp_pass)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError, ValueError) as e:
        raise NotificationError(f"Failed to send email: {e}") from e


def send_test_message(config: WatchConfig) -> None:
    """
    Validate SMTP settings by sending a test message to the recipient.

    Raises NotificationError if the relay can't be reached or rejects the
    credentials or the message.
    """
    _send(config, build_message(config, TEST_SUBJECT, TEST_BODY))


def send_availability_notice(config: WatchConfig, reporter: StatusReporter | None = None) -> bool:
    """
    Send the one-shot "domain available" notification.

    Failures are reported as a warning and never raised.

    Returns:
        True if the relay accepted the message, False otherwise
    """
    try:
        _send(config, availability_notice(config))
    except NotificationError as e:
        if reporter is not None:
            reporter.warning("Error", f"Could not send email: {e}", log=f"Could not send email: {e}")
        return False
    return True
