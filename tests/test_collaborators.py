from __future__ import annotations

import smtplib
from types import SimpleNamespace

import pytest
import requests

from utils import mailer as mailer_module
from utils.mailer import ConsoleMailer, MailerError, SMTPMailer, mailer_from_config
from utils.sms import DisabledSmsVerifier, SmsError, TwilioVerifier, sms_verifier_from_config


class FakeSMTP:
    instances: list["FakeSMTP"] = []
    fail_on_send = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls: list = []
        self.messages: list = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username, password))

    def send_message(self, msg):
        if FakeSMTP.fail_on_send:
            raise smtplib.SMTPServerDisconnected("gone")
        self.messages.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_on_send = False
    monkeypatch.setattr(mailer_module.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def _user():
    return SimpleNamespace(name="Jonas Schmedtmann", email="jonas@example.com")


def test_smtp_mailer_sends_welcome_with_link(fake_smtp) -> None:
    m = SMTPMailer("smtp.example.com", 587, "Natours <no-reply@natours.io>", "u", "p")

    m.send_welcome(_user(), "http://localhost/confirm/abc")

    server = fake_smtp.instances[-1]
    assert (server.host, server.port) == ("smtp.example.com", 587)
    assert server.calls == ["starttls", ("login", "u", "p")]
    msg = server.messages[-1]
    assert msg["To"] == "jonas@example.com"
    assert "http://localhost/confirm/abc" in msg.as_string()


def test_smtp_mailer_without_credentials_skips_login(fake_smtp) -> None:
    SMTPMailer("localhost", 25, "x@y.z", use_tls=False).send_password_reset(_user(), "http://r")
    assert fake_smtp.instances[-1].calls == []


def test_smtp_failure_becomes_mailer_error(fake_smtp) -> None:
    fake_smtp.fail_on_send = True
    with pytest.raises(MailerError):
        SMTPMailer("localhost", 25, "x@y.z").send("a@b.c", "s", "<p>b</p>")


def test_mailer_from_config_picks_backend() -> None:
    assert isinstance(mailer_from_config({"MAIL_BACKEND": "console"}), ConsoleMailer)
    smtp = mailer_from_config({
        "MAIL_BACKEND": "smtp",
        "MAIL_SERVER": "smtp.example.com",
        "MAIL_PORT": 2525,
        "MAIL_SENDER": "x@y.z",
    })
    assert isinstance(smtp, SMTPMailer)
    assert smtp.port == 2525


class FakeResponse:
    def __init__(self, status_code=201, payload=None):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.auth = None
        self.posts: list = []

    def post(self, url, data=None, timeout=None):
        self.posts.append((url, data, timeout))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def test_twilio_start_posts_e164_number_with_basic_auth() -> None:
    session = FakeSession(FakeResponse(payload={"status": "pending"}))
    verifier = TwilioVerifier("AC1", "secret", "VA1", timeout=3, session=session)

    assert verifier.start_verification("972500000000", "sms") == {"status": "pending"}

    url, data, timeout = session.posts[-1]
    assert url == "https://verify.twilio.com/v2/Services/VA1/Verifications"
    assert data == {"To": "+972500000000", "Channel": "sms"}
    assert timeout == 3
    assert session.auth == ("AC1", "secret")


def test_twilio_check_keeps_existing_plus_prefix() -> None:
    session = FakeSession(FakeResponse(payload={"status": "approved"}))
    verifier = TwilioVerifier("AC1", "secret", "VA1", session=session)

    assert verifier.check_verification("+15550001111", "123456")["status"] == "approved"
    url, data, _ = session.posts[-1]
    assert url.endswith("/VerificationCheck")
    assert data == {"To": "+15550001111", "Code": "123456"}


@pytest.mark.parametrize("response", [
    FakeResponse(status_code=400, payload={"message": "bad"}),
    FakeResponse(payload=None),
    requests.ConnectionError("down"),
])
def test_twilio_failures_become_sms_error(response) -> None:
    verifier = TwilioVerifier("AC1", "secret", "VA1", session=FakeSession(response))
    with pytest.raises(SmsError):
        verifier.start_verification("972500000000", "sms")


def test_sms_verifier_from_config_needs_all_credentials() -> None:
    assert isinstance(sms_verifier_from_config({"TWILIO_ACCOUNT_SID": "AC1"}), DisabledSmsVerifier)
    full = {"TWILIO_ACCOUNT_SID": "AC1", "TWILIO_AUTH_TOKEN": "t", "TWILIO_SERVICE_SID": "VA1"}
    assert isinstance(sms_verifier_from_config(full), TwilioVerifier)

    with pytest.raises(SmsError):
        DisabledSmsVerifier().start_verification("1", "sms")
