from marshmallow import ValidationError as SchemaValidationError

from freelancedash.utils.exceptions import ValidationError


def load_or_raise(schema, data):
    try:
        return schema.load(data or {})
    except SchemaValidationError as e:
        raise ValidationError("Invalid input", details={"fields": e.messages}) from e
