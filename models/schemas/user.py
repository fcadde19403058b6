from marshmallow import EXCLUDE, Schema, fields, pre_load, validate, validates, ValidationError

from models.user import Role

MIN_PASSWORD_LENGTH = 8


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _check_password_length(value):
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


class PasswordPairSchema(Schema):
    """New password plus its confirmation; the gateway checks that they match."""
    password = fields.String(required=True, load_only=True)
    password_confirm = fields.String(required=True, load_only=True, data_key="passwordConfirm")

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password_length(value)


class SignupSchema(PasswordPairSchema):
    class Meta:
        # role and other privileged fields are dropped, never applied
        unknown = EXCLUDE

    name = fields.String(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(required=True)
    phone_number = fields.String(allow_none=True, data_key="phoneNumber")

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data


class LoginSchema(Schema):
    # presence is checked by the gateway
    email = fields.String(allow_none=True)
    password = fields.String(load_only=True, allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data


class EmailSchema(Schema):
    email = fields.String(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data["email"] = _norm_email(data["email"])
        return data


class ResetPasswordSchema(PasswordPairSchema):
    pass


class UpdatePasswordSchema(PasswordPairSchema):
    password_current = fields.String(required=True, load_only=True, data_key="passwordCurrent")


class RoleUpdateSchema(Schema):
    role = fields.Enum(Role, by_value=True, required=True)


class PhoneVerificationSchema(Schema):
    phone_number = fields.String(required=True, data_key="phoneNumber", validate=validate.Regexp(r"^\+?[0-9]{6,15}$"))
    channel = fields.String(load_default="sms", validate=validate.OneOf(["sms", "call", "whatsapp"]))


class PhoneCodeSchema(Schema):
    phone_number = fields.String(required=True, data_key="phoneNumber", validate=validate.Regexp(r"^\+?[0-9]{6,15}$"))
    code = fields.String(required=True, validate=validate.Length(min=4, max=10))


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    name = fields.String()
    email = fields.String()
    role = fields.Enum(Role, by_value=True)
    phone_number = fields.String(allow_none=True, data_key="phoneNumber")
    email_confirmed = fields.Boolean(data_key="emailConfirmed")
    created_at = fields.DateTime(data_key="createdAt")
