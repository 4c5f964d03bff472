"""Routes for the comments blueprint."""

from __future__ import annotations

from typing import Any

from flask import jsonify

from bracketeer.utils import json_body

from . import bp
from .services import CommentService


@bp.route("/<string:message_id>", methods=["POST"])
def add_comment(message_id: str) -> Any:
    payload = json_body()
    CommentService.add_comment(message_id, payload.get("name"), payload.get("comment"))
    return jsonify({"success": True, "message": "Comment added."})


@bp.route("/<string:message_id>", methods=["GET"])
def list_comments(message_id: str) -> Any:
    return jsonify(CommentService.list_comments(message_id))
