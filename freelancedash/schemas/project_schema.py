from marshmallow import EXCLUDE, ValidationError, fields, validate, validates_schema

from freelancedash.extensions import ma

MILESTONE_STATUSES = (
    "pending", "in-progress", "completed", "revision_requested", "approved", "invoiced", "paid",
)


class MilestoneSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    title = fields.String(required=True, validate=validate.Length(min=1, max=255))
    percentage = fields.Float(
        required=True,
        validate=validate.Range(min=0, max=100, min_inclusive=False),
    )
    amount = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=0))
    due_date = fields.Date(data_key="dueDate", load_default=None, allow_none=True)
    status = fields.String(load_default="pending", validate=validate.OneOf(MILESTONE_STATUSES))


class ProjectCreateSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    title = fields.String(required=True, validate=validate.Length(min=3, max=100))
    description = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=500))
    client_email = fields.Email(data_key="clientEmail", load_default=None, allow_none=True)

    hourly_rate = fields.Float(
        data_key="hourlyRate", load_default=None, allow_none=True,
        validate=validate.Range(min=0, max=10000),
    )
    budget = fields.Float(load_default=None, allow_none=True, validate=validate.Range(min=0))
    deposit_amount = fields.Float(
        data_key="depositAmount", load_default=None, allow_none=True, validate=validate.Range(min=0)
    )
    payment_terms = fields.String(data_key="paymentTerms", load_default=None, allow_none=True)

    enable_billable_hours = fields.Boolean(data_key="enableBillableHours", load_default=False)
    max_billable_hours = fields.Float(
        data_key="maxBillableHours", load_default=None, allow_none=True, validate=validate.Range(min=0)
    )

    start_date = fields.Date(data_key="startDate", load_default=None, allow_none=True)
    end_date = fields.Date(data_key="endDate", load_default=None, allow_none=True)

    milestones = fields.List(fields.Nested(MilestoneSchema), load_default=list)

    @validates_schema
    def check_milestones_and_dates(self, data, **kwargs):
        milestones = data.get("milestones") or []
        if milestones:
            total = sum(m["percentage"] for m in milestones)
            if abs(total - 100) > 0.01:
                raise ValidationError(
                    f"Milestone percentages must add up to 100 (got {total:g})",
                    field_name="milestones",
                )

        start, end = data.get("start_date"), data.get("end_date")
        if start and end and end < start:
            raise ValidationError("End date cannot be before start date", field_name="endDate")


class ProjectDeleteSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    confirm = fields.Boolean(load_default=False)
    confirm_title = fields.String(data_key="confirmTitle", load_default=None, allow_none=True)
