# src/carmarket_admin/service/email.py
import asyncio
import html
import logging
import re
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from carmarket_admin.core.config import Settings
from carmarket_admin.models.admin import Admin

logger = logging.getLogger(__name__)

DEFAULT_FROM_NAME = "Ndong World Wide"
SMTP_TIMEOUT_SECONDS = 30

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


class EmailNotConfigured(RuntimeError):
    pass


# ---------------- Sanitizers ----------------
def escape_html(text: str) -> str:
    return html.escape(text, quote=True)


def sanitize_header(value: str) -> str:
    """Strip CR/LF so a value cannot inject extra headers."""
    return re.sub(r"[\r\n]+", " ", value).strip()


def sanitize_from_name(value: Optional[str], default: str = DEFAULT_FROM_NAME) -> str:
    if not value:
        return default
    cleaned = re.sub(r'[\r\n"]+', "", value).strip()[:100]
    return cleaned or default


def sanitize_plain_text(text: str) -> str:
    text = _CONTROL_CHARS_RE.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[^\S\n]+", " ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


# ---------------- Transport ----------------
class Mailer:
    """
    SMTP sender built once at startup and kept on ``app.state``.

    ``smtplib`` is blocking, so each send runs in the default executor.
    """

    def __init__(
        self,
        host: Optional[str],
        port: int,
        user: Optional[str],
        password: Optional[str],
        secure: bool = False,
        from_name: Optional[str] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.secure = secure
        self.from_name = sanitize_from_name(from_name)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        mailer = cls(
            host=settings.EMAIL_HOST,
            port=settings.EMAIL_PORT,
            user=settings.EMAIL_USER,
            password=settings.EMAIL_PASS,
            secure=settings.EMAIL_SECURE,
            from_name=settings.EMAIL_FROM_NAME,
        )
        if not mailer.configured:
            logger.warning("Email configuration missing. Emails will not be sent.")
        return mailer

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    @property
    def sender(self) -> str:
        return formataddr((self.from_name, self.user or ""))

    def build_message(self, to: str, subject: str, html_body: str, text_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = sanitize_header(to)
        msg["Subject"] = sanitize_header(subject)
        msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        context = ssl.create_default_context()
        if self.secure:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS, context=context) as server:
                server.login(self.user, self.password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS) as server:
                server.starttls(context=context)
                server.login(self.user, self.password)
                server.send_message(msg)

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        if not self.configured:
            raise EmailNotConfigured("Email service not configured")
        msg = self.build_message(to, subject, html_body, text_body)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._deliver, msg)
        logger.info("Email sent to %s: %s", msg["To"], msg["Subject"])


# ---------------- Messages ----------------
def build_reset_url(client_url: str, raw_token: str) -> str:
    return f"{client_url.rstrip('/')}/reset-password/{raw_token}"


async def send_password_reset_email(mailer: Mailer, admin: Admin, reset_url: str) -> None:
    escaped_name = escape_html(admin.name)
    escaped_url = escape_html(reset_url)
    html_body = f"""
      <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #2c3e50; border-bottom: 2px solid #3498db; padding-bottom: 10px;">
          Password Reset Request
        </h2>
        <p>Hello {escaped_name},</p>
        <p>We received a request to reset the password for your admin account.</p>
        <p style="margin: 24px 0;">
          <a href="{escaped_url}" style="background: #3498db; color: #fff; padding: 12px 20px; border-radius: 6px; text-decoration: none;">
            Reset Password
          </a>
        </p>
        <p>This link expires in 1 hour and can only be used once.</p>
        <p style="color: #7f8c8d; font-size: 12px; margin-top: 20px;">
          If you did not request a password reset, you can ignore this email.
        </p>
      </div>
    """
    text_body = sanitize_plain_text(
        f"""
        Password Reset Request

        Hello {admin.name},

        We received a request to reset the password for your admin account.
        Open the link below to choose a new password:

        {reset_url}

        This link expires in 1 hour and can only be used once.
        If you did not request a password reset, you can ignore this email.
        """
    )
    await mailer.send(admin.email, "Password Reset Request", html_body, text_body)
