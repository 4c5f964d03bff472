"""The comments blueprint."""

from flask import Blueprint

bp = Blueprint("comments", __name__, url_prefix="/api/comments")

from . import routes  # noqa: E402

__all__ = ["routes"]
