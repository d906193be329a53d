from decimal import Decimal

from app import ma
from models.event import Event, EventStatus
from schemas.client import ClientSummarySchema
from utils.scheduling import TIME_PATTERN, normalize_time
from marshmallow import EXCLUDE, fields, post_load, validate

TIME_ERROR = 'Invalid time format (HH:MM)'

class EventSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = Event
        load_instance = False
        include_fk = True
        dump_only = ("id", "created_at", "updated_at")
        unknown = EXCLUDE

    status = fields.Enum(EventStatus, by_value=True, load_default=EventStatus.PENDING)

    # Provide validation for fields
    client_id = fields.Integer(required=True)
    title = fields.String(required=True, validate=validate.Length(min=1, max=100))
    date = fields.Date(required=True)
    start_time = fields.String(required=True, validate=validate.Regexp(TIME_PATTERN, error=TIME_ERROR))
    end_time = fields.String(required=True, validate=validate.Regexp(TIME_PATTERN, error=TIME_ERROR))
    guests_count = fields.Integer(required=True, strict=True, validate=validate.Range(min=1))
    package_type = fields.String(required=True, validate=validate.Length(min=1, max=50))
    total_value = fields.Decimal(required=True, places=2, as_string=True,
                                 validate=validate.Range(min=Decimal('0')))
    notes = fields.String(allow_none=True)

    client = fields.Nested(ClientSummarySchema, dump_only=True)

    @post_load
    def normalize_times(self, data, **kwargs):
        for key in ('start_time', 'end_time'):
            if key in data:
                data[key] = normalize_time(data[key])
        return data

class CalendarEventSchema(ma.Schema):
    id = fields.Integer()
    title = fields.String()
    date = fields.Date()
    start_time = fields.String()
    end_time = fields.String()
    status = fields.Enum(EventStatus, by_value=True)
    guests_count = fields.Integer()
    package_type = fields.String()
    total_value = fields.Decimal(places=2, as_string=True)
    client_name = fields.Function(lambda event: event.client.name if event.client else None)
