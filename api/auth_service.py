"""
Auth gateway: signup, e-mail confirmation, login, refresh rotation, password
reset/update and phone verification.

The gateway returns plain objects and raises utils.exceptions errors; the
auth blueprint turns them into cookies and JSON envelopes. It is built once
per application from a frozen TokenSettings plus the mailer and SMS verifier.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict

from models import storage
from models.refresh_token import RefreshToken
from models.user import Role, User
from utils.exceptions import (
    BadRequest,
    Conflict,
    EmailDeliveryError,
    InvalidOrExpired,
    InvalidToken,
    NotFound,
    Unauthorized,
)
from utils.mailer import Mailer, MailerError
from utils.security import (
    TokenCodec,
    TokenSettings,
    hash_password,
    hash_token,
    verify_one_time_token,
    verify_password,
)
from utils.sms import SmsError, SmsVerifier

logger = logging.getLogger(__name__)

LinkBuilder = Callable[[str], str]


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    # verified against when the e-mail is unknown so both login failures cost one argon2 check
    return hash_password(secrets.token_hex(16))


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str
    user: User


class AuthGateway:
    def __init__(self, settings: TokenSettings, mailer: Mailer, sms: SmsVerifier):
        self.settings = settings
        self.codec = TokenCodec(settings)
        self.mailer = mailer
        self.sms = sms

    # sessions

    def create_session(self, user: User) -> AuthSession:
        """Sign an access token and persist a new refresh token for `user`."""
        access_token = self.codec.issue_access_token(user.id)
        refresh = RefreshToken.issue(user.id, self.settings.refresh_ttl)
        return AuthSession(access_token=access_token, refresh_token=refresh.token, user=user)

    def authenticate(self, token: str | None) -> User:
        """
        Resolve an access token to a live user.
        Raises Unauthorized when the token is missing, invalid or expired, the
        account is gone, or the password changed after the token was issued.
        """
        if not token:
            raise Unauthorized("You are not logged in! Please log in to get access.")
        try:
            claims = self.codec.verify_access_token(token)
        except InvalidToken as exc:
            raise Unauthorized("Invalid or expired token. Please log in again.") from exc

        user = User.find_live(claims.subject_id)
        if user is None:
            raise Unauthorized("The user belonging to this token does no longer exist.")
        if user.changed_password_after(claims.issued_at_us):
            raise Unauthorized("User recently changed password! Please log in again.")
        return user

    # signup and e-mail confirmation

    def signup(self, data: Dict[str, Any], confirm_link: LinkBuilder) -> User:
        session = storage.get_session()
        if session.query(User).filter(User.email == data["email"]).first():
            raise Conflict("Email already registered")
        self._check_confirmation(data["password"], data["password_confirm"])

        user = User(
            name=data["name"],
            email=data["email"],
            phone_number=data.get("phone_number"),
            role=Role.USER,
            email_confirmed=False,
        )
        user.set_password(data["password"])
        raw = user.create_email_confirm_token(self.settings.email_confirm_ttl)
        user.save()
        logger.info("User %s signed up", user.id)

        self._deliver_or_rollback(self.mailer.send_welcome, user, confirm_link(raw), user.clear_email_confirm)
        return user

    def resend_confirmation(self, email: str | None, confirm_link: LinkBuilder) -> None:
        user = User.find_by_email(email)
        if user is None:
            raise NotFound("There is no user with this email address.")
        if user.email_confirmed:
            raise BadRequest("Your email address is already confirmed.")

        raw = user.create_email_confirm_token(self.settings.email_confirm_ttl)
        user.save()
        self._deliver_or_rollback(self.mailer.send_welcome, user, confirm_link(raw), user.clear_email_confirm)

    def confirm_email(self, raw_token: str | None) -> AuthSession:
        user = self._user_for_token(raw_token, User.email_confirm_token)
        verify_one_time_token(raw_token, user.email_confirm_token, user.email_confirm_expires)

        user.email_confirmed = True
        user.clear_email_confirm()
        user.clear_password_reset()
        user.save()
        logger.info("User %s confirmed email", user.id)
        return self.create_session(user)

    # login, logout, refresh

    def login(self, email: str | None, password: str | None) -> AuthSession:
        if not email or not password:
            raise BadRequest("Please provide email and password")

        user = User.find_by_email(email)
        if user is None:
            verify_password(password, _dummy_password_hash())
            raise Unauthorized("Incorrect email or password")
        if not user.correct_password(password):
            logger.info("Failed login for user %s", user.id)
            raise Unauthorized("Incorrect email or password")
        if not user.email_confirmed:
            raise Unauthorized("You have not confirmed your email address!")

        logger.info("User %s logged in", user.id)
        return self.create_session(user)

    def logout(self, refresh_token: str | None = None) -> None:
        """
        Access tokens stay valid until they expire; only the presented refresh
        token, if any, is revoked.
        """
        rt = RefreshToken.find_by_value(refresh_token)
        if rt is not None:
            RefreshToken.revoke(rt.id)

    def refresh(self, refresh_token: str | None) -> AuthSession:
        if not refresh_token:
            raise BadRequest("Refresh Token is required!")

        replacement = RefreshToken.rotate(refresh_token, self.settings.refresh_ttl)
        user = User.find_live(replacement.user_id)
        if user is None:
            RefreshToken.revoke(replacement.id)
            raise Unauthorized("The user belonging to this token does no longer exist.")

        logger.info("Rotated refresh token for user %s", user.id)
        access_token = self.codec.issue_access_token(user.id)
        return AuthSession(access_token=access_token, refresh_token=replacement.token, user=user)

    # passwords

    def forgot_password(self, email: str | None, reset_link: LinkBuilder) -> None:
        user = User.find_by_email(email)
        if user is None:
            raise NotFound("There is no user with this email address.")

        raw = user.create_password_reset_token(self.settings.password_reset_ttl)
        user.save()
        self._deliver_or_rollback(self.mailer.send_password_reset, user, reset_link(raw), user.clear_password_reset)

    def reset_password(self, raw_token: str | None, password: str, password_confirm: str) -> AuthSession:
        user = self._user_for_token(raw_token, User.password_reset_token)
        verify_one_time_token(raw_token, user.password_reset_token, user.password_reset_expires)
        self._check_confirmation(password, password_confirm)

        user.set_password(password)
        user.clear_password_reset()
        user.save()
        RefreshToken.revoke_all_for(user.id)
        logger.info("User %s reset password", user.id)
        return self.create_session(user)

    def update_password(self, user: User, password_current: str, password: str, password_confirm: str) -> AuthSession:
        if not user.correct_password(password_current):
            raise Unauthorized("Your current password is wrong!")
        self._check_confirmation(password, password_confirm)

        user.set_password(password)
        user.save()
        RefreshToken.revoke_all_for(user.id)
        logger.info("User %s updated password", user.id)
        return self.create_session(user)

    # phone verification

    def start_phone_verification(self, phone_number: str, channel: str) -> Dict[str, Any]:
        try:
            return self.sms.start_verification(phone_number, channel)
        except SmsError as exc:
            raise BadRequest("Problem sending sms") from exc

    def check_phone_verification(self, phone_number: str, code: str) -> Dict[str, Any]:
        try:
            return self.sms.check_verification(phone_number, code)
        except SmsError as exc:
            raise BadRequest("Problem verifying user") from exc

    # helpers

    @staticmethod
    def _check_confirmation(password: str, password_confirm: str) -> None:
        if password != password_confirm:
            raise BadRequest("Passwords are not the same!")

    @staticmethod
    def _user_for_token(raw_token: str | None, column) -> User:
        if not raw_token:
            raise InvalidOrExpired()
        user = User.find_by_one_time_token(column, hash_token(raw_token))
        if user is None:
            raise InvalidOrExpired()
        return user

    @staticmethod
    def _deliver_or_rollback(send: Callable[[User, str], None], user: User, link: str,
                             rollback: Callable[[], None]) -> None:
        """Send a link e-mail; on failure forget the stored token so it can never be used."""
        try:
            send(user, link)
        except MailerError as exc:
            logger.warning("Mail delivery to user %s failed; token discarded", user.id)
            rollback()
            user.save()
            raise EmailDeliveryError() from exc
