"""Utility functions for the application."""

import smtplib

from flask import current_app, render_template, request
from flask_mail import Message

from .core.constants import SMTP_AUTH_ERROR_CODE
from .errors import ValidationError
from .extensions import mail


class EmailError(Exception):
    """Base class for email errors."""

    pass


def send_email(to, subject, template, **kwargs):
    """Send an email to a recipient.

    Raises:
        EmailError: If sending the email fails.
    """
    msg = Message(
        subject,
        recipients=[to],
        html=render_template(template, **kwargs),
        sender=current_app.config["MAIL_DEFAULT_SENDER"],
    )
    try:
        mail.send(msg)
    except smtplib.SMTPAuthenticationError as e:
        if e.smtp_code == SMTP_AUTH_ERROR_CODE:
            raise EmailError(
                "Authentication failed. The mail server requires an app password; "
                "check MAIL_USERNAME and MAIL_PASSWORD."
            ) from e
        raise EmailError(f"SMTP Authentication failed: {e}") from e
    except Exception as e:
        raise EmailError(f"Failed to send email: {e}") from e


def truthy(value):
    """Read a boolean flag from an environment string."""
    return (value or "").strip().lower() in ("true", "1", "t", "yes")


def json_body():
    """Return the request's JSON object body, ``{}`` when there is none.

    A body that is not valid JSON aborts with werkzeug's 400 Bad Request.
    """
    if not request.get_data(cache=True):
        return {}
    data = request.get_json(force=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.", kind="InvalidParameter")
    return data


def parse_int(value, name, default=None):
    """Read an integer from a query string or JSON value."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer.", kind="InvalidParameter")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"{name} must be an integer.", kind="InvalidParameter")
