"""
Outgoing mail for account e-mails.

Mailer is the interface the auth gateway talks to. ConsoleMailer only logs
(development and tests); SMTPMailer delivers through smtplib. Both raise
MailerError when a message cannot be handed off.
"""
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Mapping

logger = logging.getLogger(__name__)


class MailerError(Exception):
    pass


def _first_name(user) -> str:
    return (getattr(user, "name", "") or "").split(" ")[0] or "there"


class Mailer:
    def send(self, to_email: str, subject: str, body_html: str) -> None:
        raise NotImplementedError

    def send_welcome(self, user, url: str) -> None:
        body = f"""
        <h2>Welcome to the Natours family, {_first_name(user)}!</h2>
        <p>Please confirm your email address by clicking the link below:</p>
        <p><a href="{url}">Confirm my email</a></p>
        """
        self.send(user.email, "Welcome to Natours! Please confirm your email", body)

    def send_password_reset(self, user, url: str) -> None:
        body = f"""
        <h2>Hi {_first_name(user)},</h2>
        <p>Forgot your password? Submit a PATCH request with your new password and
        passwordConfirm to: <a href="{url}">{url}</a></p>
        <p>This link is only valid for a few minutes.
        If you didn't forget your password, please ignore this email.</p>
        """
        self.send(user.email, "Your password reset token", body)


class ConsoleMailer(Mailer):
    def send(self, to_email: str, subject: str, body_html: str) -> None:
        logger.info("Mail to %s: %s", to_email, subject)


class SMTPMailer(Mailer):
    def __init__(self, host: str, port: int, sender: str,
                 username: str | None = None, password: str | None = None,
                 use_tls: bool = True, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to_email: str, subject: str, body_html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.attach(MIMEText(body_html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailerError(f"could not deliver mail to {to_email}") from exc


def mailer_from_config(config: Mapping[str, Any]) -> Mailer:
    if config.get("MAIL_BACKEND") == "smtp":
        return SMTPMailer(
            host=config["MAIL_SERVER"],
            port=config["MAIL_PORT"],
            sender=config["MAIL_SENDER"],
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            use_tls=config.get("MAIL_USE_TLS", True),
        )
    return ConsoleMailer()
