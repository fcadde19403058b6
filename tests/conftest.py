from __future__ import annotations

from datetime import timedelta

import pytest

from api import create_app
from models import storage
from models.user import Role, User
from utils import security
from utils.mailer import Mailer, MailerError
from utils.sms import SmsError, SmsVerifier

PASSWORD = "pass1234!"


class RecordingMailer(Mailer):
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def send(self, to_email: str, subject: str, body_html: str) -> None:
        if self.fail:
            raise MailerError("smtp down")

    def send_welcome(self, user, url: str) -> None:
        self.sent.append(("welcome", user.email, url))
        super().send_welcome(user, url)

    def send_password_reset(self, user, url: str) -> None:
        self.sent.append(("reset", user.email, url))
        super().send_password_reset(user, url)

    def last_token(self, kind: str) -> str:
        url = [u for k, _, u in self.sent if k == kind][-1]
        return url.rstrip("/").rsplit("/", 1)[1]


class StubSmsVerifier(SmsVerifier):
    def __init__(self) -> None:
        self.fail = False
        self.calls: list[tuple] = []

    def start_verification(self, phone_number: str, channel: str):
        if self.fail:
            raise SmsError("provider down")
        self.calls.append(("start", phone_number, channel))
        return {"status": "pending", "to": phone_number, "channel": channel}

    def check_verification(self, phone_number: str, code: str):
        if self.fail:
            raise SmsError("provider down")
        self.calls.append(("check", phone_number, code))
        return {"status": "approved" if code == "123456" else "pending", "to": phone_number}


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", {"DATABASE_URL": f"sqlite:///{tmp_path / 'auth.db'}"})
    gateway = app.extensions["auth_gateway"]
    gateway.mailer = RecordingMailer()
    gateway.sms = StubSmsVerifier()
    yield app
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway(app):
    return app.extensions["auth_gateway"]


@pytest.fixture
def mailer(gateway):
    return gateway.mailer


@pytest.fixture
def sms(gateway):
    return gateway.sms


@pytest.fixture
def make_user(app):
    def _make(email="jonas@example.com", password=PASSWORD, role=Role.USER, confirmed=True, name="Jonas Schmedtmann"):
        user = User(name=name, email=email, role=role, email_confirmed=confirmed)
        user.set_password(password)
        user.save()
        return user

    return _make


@pytest.fixture
def clock(monkeypatch):
    """Shift utils.security.utc_now forward by a timedelta."""
    real_now = security.utc_now

    def _advance(delta: timedelta):
        monkeypatch.setattr(security, "utc_now", lambda: real_now() + delta)

    return _advance


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
