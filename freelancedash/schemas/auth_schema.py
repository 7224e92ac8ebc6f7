from marshmallow import EXCLUDE, fields, validate

from freelancedash.extensions import ma
from freelancedash.models.user import ROLES


class RegisterSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=8, max=128))
    full_name = fields.String(data_key="fullName", load_default=None, allow_none=True, validate=validate.Length(max=255))
    role = fields.String(required=True, validate=validate.OneOf(ROLES))
    phone = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=20))
    address = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=200))


class LoginSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
