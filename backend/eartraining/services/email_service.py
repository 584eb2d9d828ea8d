"""
Email Service
Transactional email over SMTP (password reset).

smtplib is blocking, so every send runs in a worker thread.
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from html import escape
from typing import Optional

from eartraining.config import settings


logger = logging.getLogger(__name__)


RESET_EMAIL_SUBJECT = "🔑 Recuperação de Senha - Ear Training"

RESET_EMAIL_TEMPLATE = """\
<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Recuperação de Senha</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1>🎵 {app_name}</h1>
    <h2>Olá, {user_name}! 👋</h2>
    <p>Você solicitou a recuperação da sua senha.</p>
    <p>Clique no link abaixo para criar uma nova senha:</p>
    <p><a href="{reset_url}">🔑 Redefinir Minha Senha</a></p>
    <ul>
      <li>Este link é válido por apenas <strong>{expire_minutes} minutos</strong></li>
      <li>O link só pode ser usado <strong>uma única vez</strong></li>
      <li>Se você não solicitou esta recuperação, pode ignorar este email</li>
    </ul>
    <p>Se o link não funcionar, copie e cole este endereço no navegador:</p>
    <p style="font-family: monospace; word-break: break-all;">{reset_url}</p>
  </div>
</body>
</html>
"""

RESET_EMAIL_TEXT = """\
Olá, {user_name}!

Você solicitou a recuperação da sua senha. Acesse o link abaixo para criar uma nova senha:

{reset_url}

O link é válido por {expire_minutes} minutos e só pode ser usado uma vez.
"""


class EmailService:
    """SMTP email sender"""

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = user or settings.SMTP_USER
        self.password = password or settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.from_name = settings.EMAIL_FROM_NAME

    @property
    def is_configured(self) -> bool:
        return bool(self.user and self.password)

    def reset_url(self, token: str) -> str:
        return f"{settings.FRONTEND_URL}/auth/reset-password?token={token}"

    def build_password_reset_message(
        self,
        email: str,
        token: str,
        user_name: str
    ) -> EmailMessage:
        """Multipart (text + HTML) password reset message."""
        values = {
            "app_name": escape(self.from_name),
            "user_name": escape(user_name),
            "reset_url": self.reset_url(token),
            "expire_minutes": settings.PASSWORD_RESET_EXPIRE_MINUTES,
        }
        message = EmailMessage()
        message["Subject"] = RESET_EMAIL_SUBJECT
        message["From"] = formataddr((self.from_name, self.user or ""))
        message["To"] = email
        message.set_content(RESET_EMAIL_TEXT.format(**values))
        message.add_alternative(RESET_EMAIL_TEMPLATE.format(**values), subtype="html")
        return message

    def _send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            if self.use_tls:
                smtp.starttls()
            smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def send_password_reset_email(self, email: str, token: str, user_name: str) -> bool:
        """
        Send the reset link to `email`.

        Returns:
            True if the SMTP server accepted the message
        """
        if not self.is_configured:
            logger.error("SMTP credentials not configured; reset email not sent")
            return False

        message = self.build_password_reset_message(email, token, user_name)
        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending reset email to {email}: {e}")
            return False

        logger.info(f"Password reset email sent to {email}")
        return True


# Singleton instance
email_service = EmailService()
