"""Routes for the accounts blueprint."""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify

from bracketeer.core.constants import PROFILE_FIELDS
from bracketeer.errors import ValidationError
from bracketeer.utils import json_body

from . import bp
from .forms import CredentialsForm, RegisterForm
from .services import AccountService


def _validate(form: CredentialsForm) -> CredentialsForm:
    """Raise a ValidationError describing the first problem with ``form``."""
    if form.validate_on_submit():
        return form
    if not form.username.data or not form.password.data:
        raise ValidationError("Username and password required.", kind="MissingFields")
    _, messages = next(iter(form.errors.items()))
    raise ValidationError(messages[0], kind="InvalidField")


@bp.route("/register", methods=["POST"])
def register() -> Any:
    """Create a user account."""
    payload = json_body()
    form = _validate(RegisterForm())
    profile = {field: payload.get(field) for field in PROFILE_FIELDS}
    profile["email"] = form.email.data or ""
    username = AccountService.register(form.username.data, form.password.data, profile)
    current_app.logger.info(f"User '{username}' registered.")
    return jsonify({"success": True, "username": username}), 201


@bp.route("/login", methods=["POST"])
def login() -> Any:
    """Check a username and password."""
    json_body()
    form = _validate(CredentialsForm())
    success = AccountService.check_credentials(form.username.data, form.password.data)
    return jsonify({"success": success})


@bp.route("/update", methods=["POST"])
def update() -> Any:
    """Update profile fields after checking the password."""
    payload = json_body()
    form = _validate(CredentialsForm())
    updates = {k: v for k, v in payload.items() if k not in ("username", "password")}
    AccountService.update_profile(form.username.data, form.password.data, updates)
    return jsonify({"success": True})


@bp.route("/userinfo", methods=["POST"])
def userinfo() -> Any:
    """Return the caller's profile without the password hash."""
    json_body()
    form = _validate(CredentialsForm())
    user = AccountService.authenticate(form.username.data, form.password.data)
    return jsonify(AccountService.public_profile(user))
