from app import ma
from models.user import User, UserRole
from marshmallow import EXCLUDE, fields, validate

class UserSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = User
        load_instance = False
        exclude = ("password_hash",)
        dump_only = ("id", "created_at", "updated_at")
        unknown = EXCLUDE

    # ---------- Fields ----------
    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    email = fields.Email(required=True, validate=validate.Length(max=100))
    password = fields.String(
        required=True,
        load_only=True,
        validate=validate.Length(min=6, error="Password must be at least 6 characters long"),
    )
    role = fields.String(
        load_default=UserRole.OPERATOR.value,
        validate=validate.OneOf([role.value for role in UserRole]),
    )

class LoginSchema(ma.Schema):
    class Meta:
        unknown = EXCLUDE

    username = fields.String(required=True, validate=validate.Length(min=3))
    password = fields.String(required=True, validate=validate.Length(min=6))
