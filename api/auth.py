from flask import request, jsonify
from flask_restx import Namespace, Resource, fields
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
    get_jwt,
    set_access_cookies,
    unset_jwt_cookies,
)
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from models.user import User
from schemas.user import UserSchema, LoginSchema
from app import db
from api.errors import validation_error, conflict, server_error
from utils.security import admin_required, blacklisted_tokens, current_user
import logging

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# API namespace setup
# ------------------------------------------------------------------------------
api = Namespace("auth", description="Authentication operations")

# ------------------------------------------------------------------------------
# Swagger models
# ------------------------------------------------------------------------------
login_model = api.model(
    "Login",
    {
        "username": fields.String(required=True, description="Username"),
        "password": fields.String(required=True, description="Password"),
    },
)

create_user_model = api.model(
    "CreateUser",
    {
        "username": fields.String(required=True, description="Username"),
        "email": fields.String(required=True, description="Email"),
        "password": fields.String(required=True, description="Password"),
        "role": fields.String(required=False, description="Role", enum=["admin", "operator"]),
    },
)

# ------------------------------------------------------------------------------
# Schemas & helpers
# ------------------------------------------------------------------------------
user_schema = UserSchema()
users_schema = UserSchema(many=True)
login_schema = LoginSchema()


def _issue_tokens(user):
    # identity must be a *string* so that PyJWT accepts the 'sub' claim
    user_id_str = str(user.id)
    access_token = create_access_token(identity=user_id_str, additional_claims={"role": user.role})
    refresh_token = create_refresh_token(identity=user_id_str)
    return access_token, refresh_token


def _user_conflict(username, email):
    """Message for the first of username/email already taken, else ``None``."""
    if User.query.filter_by(username=username).first():
        return "Username already in use"
    if User.query.filter_by(email=email).first():
        return "Email already in use"
    return None


# ------------------------------------------------------------------------------
# /auth
# ------------------------------------------------------------------------------
@api.route("")
class AuthIndex(Resource):
    def get(self):
        """List the available authentication endpoints."""
        return {
            "message": "Authentication API",
            "version": "1.0.0",
            "endpoints": {
                "POST /api/auth/login": "Log in",
                "POST /api/auth/refresh": "Refresh the access token",
                "POST /api/auth/logout": "Log out (authenticated)",
                "GET /api/auth/me": "Current user (authenticated)",
                "POST /api/auth/create-user": "Create a user (admin)",
                "GET /api/auth/users": "List users (admin)",
            },
            "status": "online",
        }, 200


# ------------------------------------------------------------------------------
# /auth/login
# ------------------------------------------------------------------------------
@api.route("/login")
class Login(Resource):
    @api.expect(login_model)
    @api.response(200, "Login successful")
    @api.response(400, "Validation error")
    @api.response(401, "Invalid credentials")
    def post(self):
        """Authenticate user, issue tokens and set the session cookie."""
        try:
            credentials = login_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return validation_error(err)

        user = User.query.filter_by(username=credentials["username"]).first()

        if not user or not user.check_password(credentials["password"]):
            logger.info(f"Failed login attempt for username={credentials['username']}")
            return {"error": "Invalid credentials", "message": "Incorrect username or password"}, 401

        access_token, refresh_token = _issue_tokens(user)
        logger.info(f"User logged in successfully (user_id={user.id}, username={user.username})")

        response = jsonify({
            "message": "Login successful",
            "access_token": access_token,
            "refresh_token": refresh_token,
            "user": user_schema.dump(user),
        })
        set_access_cookies(response, access_token)
        return response


# ------------------------------------------------------------------------------
# /auth/refresh
# ------------------------------------------------------------------------------
@api.route("/refresh")
class TokenRefresh(Resource):
    @jwt_required(refresh=True)
    @api.response(200, "Token refreshed successfully")
    @api.response(401, "Invalid token")
    def post(self):
        """Issue a new access token using a valid refresh token."""
        user = current_user()

        if not user:
            return {"error": "User not found"}, 404

        access_token, _ = _issue_tokens(user)
        response = jsonify({"access_token": access_token})
        set_access_cookies(response, access_token)
        return response


# ------------------------------------------------------------------------------
# /auth/logout
# ------------------------------------------------------------------------------
@api.route("/logout")
class Logout(Resource):
    @jwt_required()
    @api.response(200, "Logout successful")
    def post(self):
        """Revoke current access token and clear the session cookie."""
        blacklisted_tokens.add(get_jwt()["jti"])
        logger.info(f"User logged out successfully (user_id={get_jwt_identity()})")

        response = jsonify({"message": "Logout successful"})
        unset_jwt_cookies(response)
        return response


# ------------------------------------------------------------------------------
# /auth/me
# ------------------------------------------------------------------------------
@api.route("/me")
class Me(Resource):
    @jwt_required()
    @api.response(200, "Success")
    def get(self):
        """Return the logged-in user."""
        user = current_user()
        if not user:
            return {"error": "User not found"}, 404
        return {"user": user_schema.dump(user)}, 200


# ------------------------------------------------------------------------------
# /auth/create-user
# ------------------------------------------------------------------------------
@api.route("/create-user")
class CreateUser(Resource):
    @admin_required
    @api.expect(create_user_model)
    @api.response(201, "User created successfully")
    @api.response(400, "Validation error")
    @api.response(403, "Admin only")
    @api.response(409, "Username or email already in use")
    def post(self):
        """Create a new user account (admin only)."""
        try:
            user_data = user_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return validation_error(err)

        taken = _user_conflict(user_data["username"], user_data["email"])
        if taken:
            return {"error": "Conflict", "message": taken}, 409

        try:
            new_user = User(
                username=user_data["username"],
                email=user_data["email"],
                role=user_data["role"],
            )
            new_user.set_password(user_data["password"])

            db.session.add(new_user)
            db.session.commit()
        except IntegrityError as e:
            return conflict({"error": "Conflict", "message": "Username or email already in use"}, e)
        except SQLAlchemyError as e:
            return server_error("create user", e)

        logger.info(f"User created successfully (user_id={new_user.id}, created_by={get_jwt_identity()})")
        return {"message": "User created successfully", "user": user_schema.dump(new_user)}, 201


# ------------------------------------------------------------------------------
# /auth/users
# ------------------------------------------------------------------------------
@api.route("/users")
class UserList(Resource):
    @admin_required
    @api.response(200, "Success")
    @api.response(403, "Admin only")
    def get(self):
        """List all users (admin only)."""
        users = User.query.order_by(User.created_at, User.id).all()
        return {"users": users_schema.dump(users), "total": len(users)}, 200
