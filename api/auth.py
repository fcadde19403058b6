"""
Authentication blueprint, mounted at /api/v1/auth:
- POST  /signup
- GET   /confirm-email/<token>
- POST  /confirm-email/resend
- POST  /login
- GET|POST /logout
- POST  /refresh
- POST  /forgot-password
- PATCH /reset-password/<token>
- PATCH /update-password
- POST  /sms/send
- POST  /sms/verify

Sessions are handed to the client twice: in the JSON body and as HTTP-only
`jwt` and `refreshToken` cookies (secure-only in production).
"""
from __future__ import annotations

from datetime import timedelta

from flask import Blueprint, request, jsonify, g, current_app, url_for

from api.auth_service import AuthGateway, AuthSession
from models.schemas.user import (
    EmailSchema,
    LoginSchema,
    PhoneCodeSchema,
    PhoneVerificationSchema,
    ResetPasswordSchema,
    SignupSchema,
    UpdatePasswordSchema,
    UserOutSchema,
)
from utils.decorators import protect
from utils.security import utc_now

bp = Blueprint("auth", __name__)

signup_schema = SignupSchema()
login_schema = LoginSchema()
email_schema = EmailSchema()
reset_password_schema = ResetPasswordSchema()
update_password_schema = UpdatePasswordSchema()
phone_verification_schema = PhoneVerificationSchema()
phone_code_schema = PhoneCodeSchema()
user_out_schema = UserOutSchema()

LOGGED_OUT_COOKIE_TTL = timedelta(seconds=10)


def gateway() -> AuthGateway:
    return current_app.extensions["auth_gateway"]


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _set_cookie(resp, name: str, value: str, ttl: timedelta):
    resp.set_cookie(
        name,
        value,
        expires=utc_now() + ttl,
        httponly=True,
        secure=current_app.config.get("COOKIE_SECURE", False),
        samesite="Lax",
    )


def send_session(session: AuthSession, status: int = 200, message: str | None = None):
    """Deliver a session as JSON body plus `jwt` and `refreshToken` cookies."""
    body = {
        "status": "success",
        "accessToken": session.access_token,
        "refreshToken": session.refresh_token,
        "data": {"user": user_out_schema.dump(session.user)},
    }
    if message:
        body["message"] = message
    resp = jsonify(body)
    cookie_ttl = current_app.config["JWT_COOKIE_EXPIRES"]
    _set_cookie(resp, "jwt", session.access_token, cookie_ttl)
    _set_cookie(resp, "refreshToken", session.refresh_token, cookie_ttl)
    return resp, status


def _confirm_link(token: str) -> str:
    return url_for("auth.confirm_email", token=token, _external=True)


def _reset_link(token: str) -> str:
    return url_for("auth.reset_password", token=token, _external=True)


@bp.post("/signup")
def signup():
    """
    Register a new account and e-mail a confirmation link. No tokens are issued yet.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string }
            passwordConfirm: { type: string }
            phoneNumber: { type: string }
    responses:
      201:
        description: Created, confirmation e-mail sent
      409:
        description: Email already registered
      400:
        description: Validation error
      500:
        description: Confirmation e-mail could not be sent
    """
    data = signup_schema.load(_payload())
    user = gateway().signup(data, _confirm_link)
    return jsonify(
        {
            "status": "success",
            "message": "Confirmation email successfully sent to your address",
            "data": {"user": user_out_schema.dump(user)},
        }
    ), 201


@bp.get("/confirm-email/<token>")
def confirm_email(token: str):
    """
    Confirm an e-mail address with the token from the welcome e-mail and log in.
    ---
    tags:
      - Auth
    parameters:
      - in: path
        name: token
        type: string
        required: true
    responses:
      200:
        description: Confirmed, returns tokens
      400:
        description: Token is invalid or has expired
    """
    return send_session(gateway().confirm_email(token))


@bp.post("/confirm-email/resend")
def resend_confirmation():
    """
    Send a fresh confirmation link to an unconfirmed account.
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
    responses:
      200: { description: Sent }
      404: { description: Unknown email }
    """
    data = email_schema.load(_payload())
    gateway().resend_confirmation(data["email"], _confirm_link)
    return jsonify({"status": "success", "message": "Confirmation email sent!"}), 200


@bp.post("/login")
def login():
    """
    Login: return access and refresh tokens
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      400:
        description: Missing email or password
      401:
        description: Incorrect credentials or email not confirmed
    """
    data = login_schema.load(_payload())
    return send_session(gateway().login(data.get("email"), data.get("password")))


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    """
    Logout: overwrite the session cookie; a presented refresh token is revoked.
    Access tokens already handed out stay valid until they expire.
    ---
    tags:
      - Auth
    responses:
      200:
        description: Logged out
    """
    gateway().logout(_payload().get("refreshToken") or request.cookies.get("refreshToken"))
    resp = jsonify({"status": "success"})
    _set_cookie(resp, "jwt", "loggedout", LOGGED_OUT_COOKIE_TTL)
    resp.delete_cookie("refreshToken")
    return resp, 200


@bp.post("/refresh")
def refresh():
    """
    Use a refresh token to obtain new access and refresh tokens (rotation).
    The presented refresh token is consumed.
    ---
    tags:
      - Auth
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: New tokens
      400:
        description: No refresh token supplied
      404:
        description: Unknown, used or expired refresh token
    """
    raw = _payload().get("refreshToken") or request.cookies.get("refreshToken")
    return send_session(gateway().refresh(raw), message="New access and refresh tokens.")


@bp.post("/forgot-password")
def forgot_password():
    """
    E-mail a password reset link.
    ---
    tags:
      - Auth
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      200: { description: Token sent to email }
      404: { description: No user with this email }
      500: { description: E-mail could not be sent; no reset token stays valid }
    """
    data = email_schema.load(_payload())
    gateway().forgot_password(data["email"], _reset_link)
    return jsonify({"status": "success", "message": "Token sent to email!"}), 200


@bp.patch("/reset-password/<token>")
def reset_password(token: str):
    """
    Set a new password with a reset token and log in.
    ---
    tags:
      - Auth
    parameters:
      - in: path
        name: token
        type: string
        required: true
      - in: body
        name: body
        schema:
          type: object
          properties:
            password: { type: string }
            passwordConfirm: { type: string }
    responses:
      200: { description: Password reset, returns tokens }
      400: { description: Token is invalid or has expired }
    """
    data = reset_password_schema.load(_payload())
    return send_session(gateway().reset_password(token, data["password"], data["password_confirm"]))


@bp.patch("/update-password")
@protect()
def update_password():
    """
    Change the password of the logged in user.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            passwordCurrent: { type: string }
            password: { type: string }
            passwordConfirm: { type: string }
    responses:
      200: { description: Password updated, returns tokens }
      401: { description: Current password is wrong }
    """
    data = update_password_schema.load(_payload())
    session = gateway().update_password(
        g.current_user, data["password_current"], data["password"], data["password_confirm"]
    )
    return send_session(session)


@bp.post("/sms/send")
def send_sms():
    """
    Start phone verification (SMS, call or WhatsApp code).
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            phoneNumber: { type: string }
            channel: { type: string, enum: [sms, call, whatsapp] }
    responses:
      200: { description: Verification started }
      400: { description: Problem sending sms }
    """
    data = phone_verification_schema.load(_payload())
    result = gateway().start_phone_verification(data["phone_number"], data["channel"])
    return jsonify({"status": "success", "data": {"result": result}}), 200


@bp.post("/sms/verify")
def verify_code():
    """
    Check a phone verification code.
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            phoneNumber: { type: string }
            code: { type: string }
    responses:
      200: { description: Provider result }
      400: { description: Problem verifying user }
    """
    data = phone_code_schema.load(_payload())
    result = gateway().check_phone_verification(data["phone_number"], data["code"])
    return jsonify({"status": "success", "data": {"result": result}}), 200
