#!/usr/bin/env python3
"""
Tests for the SMTP notifier.

smtplib is mocked, so nothing is sent.

Usage:
    source .venv/bin/activate
    python -m pytest test_notifier.py
"""

import smtplib
from unittest.mock import patch

import pytest

from domain_watcher.config import WatchConfig
from domain_watcher.notifier import (
    NOTICE_BODY,
    TEST_SUBJECT,
    NotificationError,
    availability_notice,
    send_availability_notice,
    send_test_message,
)


class TestAvailabilityNotice:
    """Test the message built for an available domain."""

    def test_headers(self, watch_config):
        message = availability_notice(watch_config)

        assert message["From"] == "watcher@example.com"
        assert message["To"] == "owner@example.org"
        assert message["Subject"] == "Domain example.com is available!"

    def test_body(self, watch_config):
        message = availability_notice(watch_config)
        assert message.get_content().strip() == NOTICE_BODY


class TestTransport:
    """Test how the relay connection is made."""

    def test_port_465_uses_implicit_tls(self, watch_config):
        with patch("domain_watcher.notifier.smtplib.SMTP_SSL") as smtp_ssl, \
                patch("domain_watcher.notifier.smtplib.SMTP") as smtp_plain:
            assert send_availability_notice(watch_config) is True

        smtp_ssl.assert_called_once()
        assert smtp_ssl.call_args.args[:2] == ("smtp.example.com", 465)
        smtp_plain.assert_not_called()

        smtp = smtp_ssl.return_value
        smtp.starttls.assert_not_called()
        smtp.login.assert_called_once_with("watcher@example.com", "smtp-secret")
        smtp.send_message.assert_called_once()

    def test_other_ports_use_starttls(self, config_data):
        config = WatchConfig.from_dict({**config_data, "smtp_port": 587})

        with patch("domain_watcher.notifier.smtplib.SMTP_SSL") as smtp_ssl, \
                patch("domain_watcher.notifier.smtplib.SMTP") as smtp_plain:
            assert send_availability_notice(config) is True

        smtp_ssl.assert_not_called()
        assert smtp_plain.call_args.args[:2] == ("smtp.example.com", 587)

        smtp = smtp_plain.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("watcher@example.com", "smtp-secret")
        smtp.send_message.assert_called_once()

    def test_connection_is_closed(self, watch_config):
        with patch("domain_watcher.notifier.smtplib.SMTP_SSL") as smtp_ssl:
            send_availability_notice(watch_config)

        smtp_ssl.return_value.__exit__.assert_called_once()


class TestSendAvailabilityNotice:
    """Failures are reported, never raised."""

    def test_rejected_credentials_return_false(self, watch_config, reporter, console_output):
        with patch("domain_watcher.notifier.smtplib.SMTP_SSL") as smtp_ssl:
            smtp_ssl.return_value.login.side_effect = smtplib.SMTPAuthenticationError(
                535, b"Authentication failed"
            )
            assert send_availability_notice(watch_config, reporter) is False

        smtp_ssl.return_value.send_message.assert_not_called()
        assert "Could not send email" in console_output.getvalue()

    def test_unreachable_relay_returns_false(self, watch_config, reporter):
        with patch("domain_watcher.notifier.smtplib.SMTP_SSL",
                   side_effect=ConnectionRefusedError(111, "Connection refused")):
            assert send_availability_notice(watch_config, reporter) is False

    def test_rejected_recipient_returns_false(self, watch_config):
        with patch("domain_watcher.notifier.smtplib.SMTP_SSL") as smtp_ssl:
            smtp_ssl.return_value.send_message.side_effect = smtplib.SMTPRecipientsRefused(
                {"owner@example.org": (550, b"No such user")}
            )
            assert send_availability_notice(watch_config) is False


class TestSendTestMessage:
    """The startup credential check raises on failure."""

    def test_sends_validation_message(self, watch_config):
        with patch("domain_watcher.notifier.smtplib.SMTP_SSL") as smtp_ssl:
            send_test_message(watch_config)

        message = smtp_ssl.return_value.send_message.call_args.args[0]
        assert message["Subject"] == TEST_SUBJECT
        assert message["To"] == "owner@example.org"

    def test_failure_raises_notification_error(self, watch_config):
        with patch("domain_watcher.notifier.smtplib.SMTP_SSL") as smtp_ssl:
            smtp_ssl.return_value.login.side_effect = smtplib.SMTPAuthenticationError(
                535, b"Authentication failed"
            )
            with pytest.raises(NotificationError, match="Failed to send email"):
                send_test_message(watch_config)

    def test_dns_failure_raises_notification_error(self, watch_config):
        with patch("domain_watcher.notifier.smtplib.SMTP_SSL",
                   side_effect=OSError("Name or service not known")):
            with pytest.raises(NotificationError):
                send_test_message(watch_config)
