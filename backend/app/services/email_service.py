"""
Email Service for SocietySync
=============================
Handles outbound mail:
- OTP codes for registration
- Society invites (targeted invites only; link invites are shared by hand)

Delivery is best-effort: send_email never raises, callers get a bool.
"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from app.core.config import settings
from app.core.logging_config import logger
from app.core.types import utcnow


_LAYOUT = """<!DOCTYPE html>
<html>
<head><style>
    body {{ font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #e5e7eb; background: #020617; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .content {{ background: #0f172a; padding: 30px; border-radius: 8px; border: 1px solid #1e293b; }}
    .code {{ font-size: 32px; font-weight: bold; letter-spacing: 8px; font-family: monospace; text-align: center; background: #1e293b; padding: 20px; border-radius: 6px; }}
    .button {{ display: inline-block; background: #6366f1; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; margin: 20px 0; }}
    .muted {{ font-size: 12px; color: #64748b; }}
</style></head>
<body>
    <div class="container">
        <div class="content">
            <h1>{heading}</h1>
            {body}
        </div>
        <p class="muted" style="text-align: center;">&copy; {year} {app_name}</p>
    </div>
</body>
</html>
"""


def render_email(heading: str, body: str) -> str:
    """Wrap an HTML fragment in the shared SocietySync layout"""
    return _LAYOUT.format(heading=heading, body=body, year=utcnow().year, app_name=settings.APP_NAME)


class EmailService:
    """Async email service over SMTP (aiosmtplib)"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.sender = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM}>"

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    def _build_message(self, to_email: str, subject: str, html_content: str,
                       text_content: Optional[str]) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self.sender
        message["To"] = to_email
        message["Subject"] = subject
        # last part wins in most clients, so HTML goes after the plain text
        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))
        return message

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """Returns True when the SMTP server accepted the message"""
        if not self.is_configured:
            logger.warning(f"[Email] SMTP not configured, dropping '{subject}' for {to_email}")
            return False

        try:
            await aiosmtplib.send(
                self._build_message(to_email, subject, html_content, text_content),
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=True
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email/SMTP] Failed to send '{subject}' to {to_email}: {e}")
            return False

        logger.info(f"[Email/SMTP] Sent '{subject}' to {to_email}")
        return True

    async def send_otp_email(self, to_email: str, code: str) -> bool:
        """Registration verification code"""
        minutes = settings.OTP_EXPIRE_MINUTES
        html_content = render_email(
            "Email Verification",
            f"""<p>Thank you for signing up for SocietySync. Use the code below to verify your email address.</p>
            <div class="code">{code}</div>
            <p class="muted">This code expires in {minutes} minutes. If you didn't request it, ignore this email.</p>""",
        )
        text_content = f"Your SocietySync verification code is {code}.\nIt expires in {minutes} minutes."

        return await self.send_email(to_email, "Verification Email - SocietySync", html_content, text_content)

    async def send_invite_email(
        self,
        to_email: str,
        invite_url: str,
        role: str,
        society_name: str,
        department_name: Optional[str] = None,
    ) -> bool:
        scope = f"{department_name} department of {society_name}" if department_name else society_name
        html_content = render_email(
            "You're invited!",
            f"""<p>You have been invited to join the <b>{scope}</b> as <b>{role}</b>.</p>
            <p style="text-align: center;"><a href="{invite_url}" class="button">Accept Invite</a></p>
            <p class="muted">Or open this link in your browser:<br>
            <code style="word-break: break-all;">{invite_url}</code></p>""",
        )
        text_content = (
            f"You have been invited to join the {scope} as {role}.\n\n"
            f"Accept the invite: {invite_url}"
        )

        return await self.send_email(
            to_email, f"You're invited to join {society_name} as {role}", html_content, text_content
        )


email_service = EmailService()
