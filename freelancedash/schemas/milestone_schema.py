from marshmallow import EXCLUDE, fields, validate

from freelancedash.extensions import ma


class MilestoneSubmitSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    evidence = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=2000))


class MilestoneRevisionSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    comment = fields.String(
        data_key="revisionComment", required=True, validate=validate.Length(min=1, max=2000)
    )
