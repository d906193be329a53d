from app import ma
from models.client import Client
from marshmallow import EXCLUDE, fields, validate, pre_load

class ClientSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Client
        load_instance = False
        dump_only = ("id", "created_at", "updated_at")
        unknown = EXCLUDE

    # Provide validation for fields
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    email = fields.Email(allow_none=True, validate=validate.Length(max=100))
    phone = fields.String(allow_none=True, validate=validate.Length(max=20))
    address = fields.String(allow_none=True)
    notes = fields.String(allow_none=True)

    @pre_load
    def blank_email_to_none(self, data, **kwargs):
        # The SPA submits "" for an untouched optional email input
        if isinstance(data, dict) and data.get('email') == '':
            data = dict(data, email=None)
        return data

class ClientSummarySchema(ma.Schema):
    id = fields.Integer()
    name = fields.String()
    phone = fields.String(allow_none=True)
    email = fields.String(allow_none=True)
    address = fields.String(allow_none=True)
