# statushub/infrastructure/notifications/providers/email_provider.py

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
from typing import Optional

from statushub.core.config import settings


class EmailSendError(Exception):
    """Échec de transport SMTP (connexion, auth, refus destinataire...)."""


class EmailProvider:
    """
    Envoi d'e-mails via SMTP : multipart/alternative (texte + HTML) avec
    en-têtes List-Unsubscribe / List-Unsubscribe-Post (one-click).
    Pré-requis: settings.SMTP_HOST et settings.SMTP_FROM.
    """

    def __init__(self, *, unsubscribe_url: Optional[str] = None):
        if not settings.SMTP_HOST:
            raise ValueError("SMTP_HOST not configured")
        if not settings.SMTP_FROM:
            raise ValueError("SMTP_FROM not configured")

        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME
        self.password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.sender = settings.SMTP_FROM
        self.unsubscribe_url = unsubscribe_url or settings.SITE_URL

    def build_message(self, *, to: str, subject: str, html: str, text: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg["Date"] = formatdate(usegmt=True)
        msg["Message-ID"] = make_msgid(domain="statushub.dev")
        msg["List-Unsubscribe"] = f"<{self.unsubscribe_url}>"
        msg["List-Unsubscribe-Post"] = "List-Unsubscribe=One-Click"
        # ordre MIME : la dernière partie est la préférée
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def send(self, *, to: str, subject: str, html: str, text: str) -> bool:
        msg = self.build_message(to=to, subject=subject, html=html, text=text)
        try:
            server = smtplib.SMTP(self.host, self.port, timeout=10)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailSendError(f"SMTP connect failed: {exc}") from exc

        try:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.sendmail(self.sender, [to], msg.as_string())
            return True
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailSendError(f"SMTP send failed: {exc}") from exc
        finally:
            try:
                server.quit()
            except (smtplib.SMTPException, OSError):
                pass
