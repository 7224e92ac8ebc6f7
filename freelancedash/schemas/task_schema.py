from marshmallow import EXCLUDE, fields, validate

from freelancedash.extensions import ma


class TaskCreateSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    title = fields.String(required=True, validate=validate.Length(min=3, max=100))
    description = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=500))
    estimated_hours = fields.Float(
        data_key="estimatedHours", load_default=0, validate=validate.Range(min=0, max=1000)
    )


class ProgressLogSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    progress = fields.Integer(required=True, validate=validate.Range(min=0, max=100))
    notes = fields.String(load_default="", allow_none=True)
    hours = fields.Float(load_default=0, validate=validate.Range(min=0, max=1000))
