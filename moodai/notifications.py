"""
Transactional email for the MoodAI service.

Emails are fire-and-forget: the server schedules them as background tasks and
any delivery failure is logged, never raised to the request.
"""

import logging
import smtplib
import ssl
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from html import escape

from .classifier import color_for
from .config import Settings
from .models import Consultation, MoodLabel
from .reports import WeeklySummary

logger = logging.getLogger(__name__)

Sender = Callable[[EmailMessage], None]


@dataclass(frozen=True)
class SmtpConfig:
    host: str
    port: int
    user: str | None
    password: str | None
    use_tls: bool
    from_email: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpConfig":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user or None,
            password=settings.smtp_password or None,
            use_tls=settings.smtp_use_tls,
            from_email=settings.mail_from,
        )


def send_via_smtp(smtp: SmtpConfig, msg: EmailMessage) -> None:
    context = ssl.create_default_context()

    # Port 465 uses implicit SSL, anything else STARTTLS when enabled
    if smtp.port == 465:
        server = smtplib.SMTP_SSL(smtp.host, smtp.port, timeout=20, context=context)
    else:
        server = smtplib.SMTP(smtp.host, smtp.port, timeout=20)
        if smtp.use_tls:
            server.starttls(context=context)
    try:
        if smtp.user and smtp.password:
            server.login(smtp.user, smtp.password)
        server.send_message(msg)
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            pass


def _layout(title: str, accent: str, body: str, footer: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<body style="font-family: 'Segoe UI', Tahoma, sans-serif; background: #f0fdfa; margin: 0; padding: 40px;">
  <div style="max-width: 600px; margin: 0 auto; background: white; border-radius: 24px; overflow: hidden;">
    <div style="background: {accent}; padding: 40px; text-align: center;">
      <h1 style="color: white; margin: 0;">{title}</h1>
    </div>
    <div style="padding: 40px; color: #374151; line-height: 1.8;">
{body}
    </div>
    <div style="text-align: center; padding: 24px; background: #f9fafb; color: #6b7280; font-size: 14px;">
      <p>{footer}</p>
    </div>
  </div>
</body>
</html>"""


def render_welcome(username: str, email: str, frontend_url: str) -> str:
    body = f"""      <h2>Hi {escape(username)}, welcome aboard!</h2>
      <p>MoodAI is here to support your mental and emotional wellbeing with
      mood-aware conversations and personalized recommendations.</p>
      <ul>
        <li>Chat with your wellness companion anytime</li>
        <li>Track your mood journey over time</li>
        <li>Get recommendations matched to how you feel</li>
        <li>Book 1-on-1 sessions with certified consultants</li>
      </ul>
      <p><strong>Email:</strong> {escape(email)}<br>
      <strong>Username:</strong> {escape(username)}</p>
      <p><a href="{escape(frontend_url)}/login">Start your wellness journey</a></p>"""
    return _layout("Welcome to MoodAI", "#10b981", body, "MoodAI - Corporate Wellness, Reimagined")


def render_consultation(consultation: Consultation) -> str:
    booked = datetime.fromtimestamp(consultation.created_at).strftime("%Y-%m-%d %H:%M")
    body = f"""      <h2>Hi {escape(consultation.username)},</h2>
      <p>Your 1-on-1 wellness consultation has been booked. A consultant will reach
      out within 24 hours to schedule your session.</p>
      <p><strong>Booking ID:</strong> {escape(consultation.id)}<br>
      <strong>Amount Paid:</strong> {consultation.amount:.2f} {escape(consultation.currency)}<br>
      <strong>Payment ID:</strong> {escape(consultation.payment_id)}<br>
      <strong>Date:</strong> {booked}</p>
      <p>We will contact you at <strong>{escape(consultation.email)}</strong> to confirm a time slot.</p>"""
    return _layout("Booking Confirmed", "#f59e0b", body, "Questions? Reply to this email.")


def render_session_summary(username: str, mood: MoodLabel, reply: str) -> str:
    body = f"""      <h2>Hi {escape(username)},</h2>
      <p>Here's a quick recap of your session:</p>
      <blockquote style="border-left: 4px solid {color_for(mood)}; padding-left: 12px;">
        <strong>Detected mood:</strong> {escape(mood.value)}
      </blockquote>
      <p><strong>MoodAI said:</strong><br>{escape(reply)}</p>"""
    return _layout("Your Session Summary", "#10b981", body, "Take care of yourself.")


def render_weekly_report(username: str, summary: WeeklySummary) -> str:
    if not summary.total:
        details = "      <p>No check-ins this week. We'd love to hear from you!</p>"
    else:
        rows = "\n".join(
            f'        <li><span style="color: {color_for(mood)};">&#9679;</span> '
            f"{escape(mood.value)}: {count}</li>"
            for mood, count in summary.counts.items()
        )
        dominant = summary.dominant_mood.value if summary.dominant_mood else "-"
        details = f"""      <p>You checked in <strong>{summary.total}</strong> times.
      Most often you felt <strong>{escape(dominant)}</strong>
      (average mood score {summary.average_score}).</p>
      <ul>
{rows}
      </ul>"""
    body = f"      <h2>Hi {escape(username)},</h2>\n{details}"
    return _layout("Your Week in Moods", "#60a5fa", body, "MoodAI weekly report")


class NotificationService:
    """
    Sends templated transactional email.

    Args:
        smtp: SMTP connection details; sending is skipped when host is empty
        frontend_url: Base URL used for links in emails
        sender: Delivery callable, defaults to SMTP
    """

    def __init__(
        self,
        smtp: SmtpConfig,
        *,
        frontend_url: str = "http://localhost:5173",
        sender: Sender | None = None,
    ) -> None:
        self.smtp = smtp
        self.frontend_url = frontend_url
        self._sender = sender

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationService":
        return cls(SmtpConfig.from_settings(settings), frontend_url=settings.frontend_url)

    def send_welcome(self, email: str, username: str) -> bool:
        return self._send(
            email,
            "Welcome to MoodAI - Your Wellness Journey Starts Here",
            render_welcome(username, email, self.frontend_url),
        )

    def send_consultation_confirmation(self, consultation: Consultation) -> bool:
        return self._send(
            consultation.email,
            "Consultation Booking Confirmed - MoodAI",
            render_consultation(consultation),
        )

    def send_session_summary(self, email: str, username: str, mood: MoodLabel, reply: str) -> bool:
        return self._send(
            email, "Your MoodAI Session Summary", render_session_summary(username, mood, reply)
        )

    def send_weekly_report(self, email: str, username: str, summary: WeeklySummary) -> bool:
        return self._send(
            email, "Your MoodAI Weekly Report", render_weekly_report(username, summary)
        )

    def _send(self, to_email: str, subject: str, html: str) -> bool:
        """Deliver one email; returns whether it was handed off successfully."""
        if self._sender is None and not self.smtp.host:
            logger.info("Email disabled, skipping %r to %s", subject, to_email)
            return False

        msg = EmailMessage()
        msg["From"] = self.smtp.from_email
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(html, subtype="html")

        try:
            if self._sender is not None:
                self._sender(msg)
            else:
                send_via_smtp(self.smtp, msg)
        except Exception:
            logger.exception("Email sending failed: %r to %s", subject, to_email)
            return False

        logger.info("Email %r sent to %s", subject, to_email)
        return True
