from marshmallow import EXCLUDE, fields, validate

from freelancedash.extensions import ma


class InvitationCreateSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    project_id = fields.String(data_key="projectId", required=True, validate=validate.Length(min=1))
    freelancer_id = fields.String(data_key="freelancerId", load_default=None, allow_none=True)
    client_email = fields.Email(data_key="clientEmail", required=True)


class InvitationAcceptSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    token = fields.String(required=True, validate=validate.Length(min=1))
    client_id = fields.String(data_key="clientId", load_default=None, allow_none=True)


class InvitationRejectSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    token = fields.String(required=True, validate=validate.Length(min=1))


class CheckClientSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)


class InvitationEmailSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    client_email = fields.Email(data_key="clientEmail", required=True)
    invitation_link = fields.Url(data_key="invitationLink", required=True, require_tld=False)
    project_title = fields.String(data_key="projectTitle", required=True)
    freelancer_name = fields.String(data_key="freelancerName", load_default=None, allow_none=True)
    freelancer_email = fields.Email(data_key="freelancerEmail", load_default=None, allow_none=True)
