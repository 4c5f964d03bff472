"""Forms for the accounts blueprint.

The API is JSON-only, so the forms bind to the request's JSON body and run
without CSRF tokens.
"""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Length, Optional, Regexp

from bracketeer.core.constants import MIN_PASSWORD_LENGTH


def as_text(value):
    """Coerce JSON scalars to strings so length checks behave."""
    if value is None or isinstance(value, str):
        return value
    return str(value)


class ApiForm(FlaskForm):
    """Base form for JSON endpoints."""

    class Meta:
        csrf = False


class CredentialsForm(ApiForm):
    """Username and password, as sent to every authenticated endpoint."""

    username = StringField("Username", filters=[as_text], validators=[DataRequired()])
    password = PasswordField("Password", filters=[as_text], validators=[DataRequired()])


class RegisterForm(CredentialsForm):
    """Registration form."""

    password = PasswordField(
        "Password",
        filters=[as_text],
        validators=[
            DataRequired(),
            Length(
                min=MIN_PASSWORD_LENGTH,
                message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            ),
        ],
    )
    email = StringField(
        "Email",
        filters=[as_text],
        validators=[
            Optional(),
            Regexp(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", message="Invalid email format"),
        ],
    )
