"""Shared fixtures for the MoodAI tests."""

import random
from email.message import EmailMessage

import pytest

from moodai.config import Settings
from moodai.notifications import NotificationService, SmtpConfig
from moodai.responses import CannedResponder, ResponseComposer

JWT_SECRET = "test-secret"
RAZORPAY_KEY_ID = "rzp_test_key"
RAZORPAY_KEY_SECRET = "rzp_test_secret"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        jwt_secret=JWT_SECRET,
        openai_api_key="",
        razorpay_key_id="",
        smtp_host="",
        send_session_summaries=False,
    )


@pytest.fixture
def outbox() -> list[EmailMessage]:
    return []


@pytest.fixture
def notifier(outbox) -> NotificationService:
    smtp = SmtpConfig(
        host="",
        port=587,
        user=None,
        password=None,
        use_tls=False,
        from_email="MoodAI <no-reply@moodai.app>",
    )
    return NotificationService(smtp, sender=outbox.append)


@pytest.fixture
def composer() -> ResponseComposer:
    return ResponseComposer(canned=CannedResponder(random.Random(7)))
