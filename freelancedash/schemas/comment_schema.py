from marshmallow import EXCLUDE, ValidationError, fields, pre_load, validate

from freelancedash.extensions import ma
from freelancedash.models.project_comment import COMMENT_KINDS

# older clients posted the text under these keys
LEGACY_BODY_KEYS = ("comment", "updateText")


class CommentCreateSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    body = fields.String(required=True, validate=validate.Length(min=1, max=5000))
    kind = fields.String(load_default="comment", validate=validate.OneOf(COMMENT_KINDS))
    progress_update_id = fields.String(data_key="progressUpdateId", load_default=None, allow_none=True)

    @pre_load
    def normalise_body(self, data, **kwargs):
        if not isinstance(data, dict):
            raise ValidationError("Invalid payload")
        if data.get("body"):
            return data
        for key in LEGACY_BODY_KEYS:
            if data.get(key):
                data = dict(data)
                data["body"] = data[key]
                break
        return data
