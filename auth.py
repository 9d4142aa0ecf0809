"""
Token authentication — sign-in, sign-up, sign-out and route guards.

Passwords are hashed with werkzeug.security; sessions are stateless signed
JWTs carrying the user id. The authenticator variant is picked once at
wiring time by ``build_authenticator``: the insecure development variant is
never constructed for a production configuration.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any

import jwt
from flask import Blueprint, current_app, g, jsonify, request
from werkzeug.security import check_password_hash

from audit import log_event
from config import AUTH_MODE_INSECURE_DEV, AUTH_MODE_JWT, Settings
from db_stores import UserStoreDB
from errors import Forbidden, Unauthorized, ValidationError
from extensions import limiter
from services import users
from validation import json_body

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "t"
INVALID_CREDENTIALS = "Invalid email or password"

auth_bp = Blueprint("auth", __name__)


class Authenticator:
    """Verifies credentials, issues tokens and validates them on requests."""

    def __init__(self, settings: Settings):
        self.settings = settings

    # ── tokens ───────────────────────────────────────────────────

    def issue_token(self, user_id: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userId": user_id,
            "iat": now,
            "exp": now + timedelta(seconds=self.settings.jwt_expires_seconds),
        }
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def decode_token(self, token: str) -> dict:
        try:
            claims = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                options={"require": ["exp", "userId"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise Unauthorized("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise Unauthorized("Invalid token") from e
        return {"userId": claims["userId"]}

    @staticmethod
    def token_from_request() -> str | None:
        header = request.headers.get("Authorization", "")
        scheme, _, value = header.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
        return request.cookies.get(TOKEN_COOKIE) or None

    def authenticate(self) -> dict:
        """Return the caller's identity or raise Unauthorized."""
        token = self.token_from_request()
        if not token:
            raise Unauthorized("No authorization token was found")
        return self.decode_token(token)

    # ── credentials ──────────────────────────────────────────────

    def sign_in(self, email: str, password: str) -> tuple[str, dict]:
        """Return (token, public user). Unknown email and wrong password fail alike."""
        email = email.strip().lower() if isinstance(email, str) else ""
        user = UserStoreDB.find_by_email(email) if email else None
        if not user or not isinstance(password, str) or not check_password_hash(user["password"], password):
            log_event("signin_failed", user["_id"] if user else None, f"email={email}")
            raise ValidationError(INVALID_CREDENTIALS)

        log_event("signin_success", user["_id"])
        return self.issue_token(user["_id"]), UserStoreDB.public(user)

    def sign_up(self, profile: dict) -> tuple[str, dict]:
        user = users.create(profile)
        log_event("signup", user["_id"], f"email={user['email']}")
        return self.issue_token(user["_id"]), UserStoreDB.public(user)


class InsecureDevAuthenticator(Authenticator):
    """Development-only variant: accepts every request without a token.

    The caller may name the identity to act as with ``X-Dev-User-Id``;
    a valid bearer token is still honoured when present.
    """

    DEV_USER_HEADER = "X-Dev-User-Id"

    def authenticate(self) -> dict:
        token = self.token_from_request()
        if token:
            try:
                return self.decode_token(token)
            except Unauthorized:
                logger.debug("insecure-dev: ignoring invalid token")
        return {"userId": request.headers.get(self.DEV_USER_HEADER, "dev-user"), "insecure": True}


def build_authenticator(settings: Settings) -> Authenticator:
    """Pick the authenticator for this process. Refuses the insecure variant in production."""
    if settings.auth_mode == AUTH_MODE_JWT:
        return Authenticator(settings)
    if settings.auth_mode == AUTH_MODE_INSECURE_DEV:
        if settings.is_production:
            raise RuntimeError("AUTH_MODE=insecure-dev cannot be used in production.")
        logger.warning("Authentication is DISABLED (AUTH_MODE=insecure-dev). Never use this in production.")
        return InsecureDevAuthenticator(settings)
    raise RuntimeError(f"Unknown AUTH_MODE {settings.auth_mode!r}")


def get_authenticator() -> Authenticator:
    return current_app.extensions["authenticator"]


def current_user_id() -> str | None:
    identity = getattr(g, "auth", None)
    return identity["userId"] if identity else None


# ── Route guards ─────────────────────────────────────────────────────


def require_signin(f: Callable) -> Callable:
    """Reject the request unless it carries a valid token; expose identity as g.auth."""
    @wraps(f)
    def decorated(*args: Any, **kwargs: Any) -> Any:
        g.auth = get_authenticator().authenticate()
        return f(*args, **kwargs)
    return decorated


def has_authorization(param: str = "id") -> Callable:
    """Only let the signed-in user act on the profile named by ``param``."""
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated(*args: Any, **kwargs: Any) -> Any:
            identity = getattr(g, "auth", None)
            if not identity or identity["userId"] != kwargs.get(param):
                raise Forbidden("User is not authorized")
            return f(*args, **kwargs)
        return decorated
    return decorator


# ── Routes ───────────────────────────────────────────────────────────


def _signin_limit() -> str:
    return current_app.extensions["settings"].signin_rate_limit


def _set_token_cookie(response, token: str):
    settings = current_app.extensions["settings"]
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=settings.jwt_expires_seconds,
        httponly=True,
        samesite="Lax",
        secure=settings.is_production,
    )
    return response


@auth_bp.route("/auth/signin", methods=["POST"])
@limiter.limit(_signin_limit)
def signin():
    data = json_body()
    token, user = get_authenticator().sign_in(data.get("email", ""), data.get("password", ""))
    return _set_token_cookie(jsonify({"token": token, "user": user}), token), 200


@auth_bp.route("/auth/signup", methods=["POST"])
@limiter.limit(_signin_limit)
def signup():
    token, user = get_authenticator().sign_up(json_body())
    return _set_token_cookie(jsonify({"token": token, "user": user}), token), 201


@auth_bp.route("/auth/signout", methods=["GET"])
def signout():
    log_event("signout", None)
    response = jsonify({"message": "signed out"})
    response.delete_cookie(TOKEN_COOKIE)
    return response, 200
