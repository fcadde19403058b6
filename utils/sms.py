"""
Phone verification through Twilio Verify.

The payload returned by the provider is passed through untouched; callers
only care whether the request succeeded.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

import requests

logger = logging.getLogger(__name__)

TWILIO_VERIFY_URL = "https://verify.twilio.com/v2/Services/{service_sid}"


class SmsError(Exception):
    pass


class SmsVerifier:
    def start_verification(self, phone_number: str, channel: str) -> Dict[str, Any]:
        raise NotImplementedError

    def check_verification(self, phone_number: str, code: str) -> Dict[str, Any]:
        raise NotImplementedError


class DisabledSmsVerifier(SmsVerifier):
    """Used when no Twilio credentials are configured."""

    def start_verification(self, phone_number: str, channel: str) -> Dict[str, Any]:
        raise SmsError("SMS verification is not configured")

    def check_verification(self, phone_number: str, code: str) -> Dict[str, Any]:
        raise SmsError("SMS verification is not configured")


class TwilioVerifier(SmsVerifier):
    def __init__(self, account_sid: str, auth_token: str, service_sid: str,
                 timeout: float = 10.0, session: requests.Session | None = None):
        self.base_url = TWILIO_VERIFY_URL.format(service_sid=service_sid)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (account_sid, auth_token)

    @staticmethod
    def _e164(phone_number: str) -> str:
        return phone_number if phone_number.startswith("+") else f"+{phone_number}"

    def _post(self, path: str, data: Dict[str, str]) -> Dict[str, Any]:
        try:
            resp = self.session.post(f"{self.base_url}/{path}", data=data, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            logger.warning("Twilio Verify %s failed: %s", path, exc)
            raise SmsError(f"Twilio Verify {path} failed") from exc
        except ValueError as exc:
            raise SmsError("Twilio Verify returned a non-JSON body") from exc

    def start_verification(self, phone_number: str, channel: str) -> Dict[str, Any]:
        return self._post("Verifications", {"To": self._e164(phone_number), "Channel": channel})

    def check_verification(self, phone_number: str, code: str) -> Dict[str, Any]:
        return self._post("VerificationCheck", {"To": self._e164(phone_number), "Code": code})


def sms_verifier_from_config(config: Mapping[str, Any]) -> SmsVerifier:
    sid = config.get("TWILIO_ACCOUNT_SID")
    token = config.get("TWILIO_AUTH_TOKEN")
    service = config.get("TWILIO_SERVICE_SID")
    if sid and token and service:
        return TwilioVerifier(sid, token, service, timeout=config.get("TWILIO_TIMEOUT_SECONDS", 10.0))
    return DisabledSmsVerifier()
