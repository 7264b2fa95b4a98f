"""Outgoing e-mail over SMTP."""

import logging
import smtplib
from email.message import EmailMessage

import config

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, host: str, port: int, username: str = "", password: str = "",
                 from_email: str = "", from_name: str = "", use_tls: bool = False):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.use_tls = use_tls

    def send(self, email: str, subject: str, message: str) -> None:
        msg = EmailMessage()
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = email
        msg["Subject"] = subject
        msg.set_content(message)

        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)
        logger.info("Message sent to %s: %s", email, subject)


def get_mailer() -> Mailer:
    return Mailer(
        host=config.SMTP_HOST,
        port=config.SMTP_PORT,
        username=config.SMTP_EMAIL,
        password=config.SMTP_PASSWORD,
        from_email=config.FROM_EMAIL,
        from_name=config.FROM_NAME,
        use_tls=config.SMTP_USE_TLS,
    )
