from marshmallow import EXCLUDE, fields, validate

from freelancedash.extensions import ma


class ContractSignSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    signature = fields.String(required=True, validate=validate.Length(min=1, max=255))
