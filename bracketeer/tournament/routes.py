"""Routes for the tournament blueprint."""

from __future__ import annotations

from typing import Any

from flask import current_app, jsonify, request

from bracketeer.core.constants import DEFAULT_PAGE, DEFAULT_PER_PAGE
from bracketeer.errors import ValidationError
from bracketeer.storage import sanitize_name
from bracketeer.utils import json_body, parse_int

from . import bp
from .services import TournamentService


def _tournament_arg() -> str:
    """The tournament named by the ``tournament`` query parameter."""
    name = request.args.get("tournament", "")
    if not name.strip():
        raise ValidationError("Tournament name required.", kind="MissingName")
    return name


def _seeding(payload: dict[str, Any]) -> list[str] | None:
    """Explicit seed order from the JSON body or repeated query parameters."""
    seeding = payload.get("seeding")
    if seeding is None:
        seeding = request.args.getlist("seeding") or None
    if seeding is not None and (
        not isinstance(seeding, list) or not all(isinstance(s, str) for s in seeding)
    ):
        raise ValidationError("seeding must be a list of names.", kind="InvalidSeeding")
    return seeding


@bp.route("/tournament", methods=["POST"])
def create_tournament() -> Any:
    """Create a new tournament."""
    payload = json_body()
    meta = TournamentService.create_tournament(payload.get("name"), payload)
    current_app.logger.info(f"Tournament '{meta.name}' created.")
    return jsonify({"tournamentName": meta.name, "meta": meta.to_dict()}), 201


@bp.route("/tournaments", methods=["GET"])
def list_tournaments() -> Any:
    """List all tournaments."""
    return jsonify({"tournaments": TournamentService.list_tournaments()})


@bp.route("/tournament", methods=["GET"])
def get_tournament() -> Any:
    """Return the meta block of one tournament."""
    meta = TournamentService.get_tournament_meta(_tournament_arg())
    return jsonify(meta.to_dict())


@bp.route("/tournament", methods=["PATCH"])
def patch_tournament() -> Any:
    """Update display fields of a tournament."""
    meta = TournamentService.patch_tournament_meta(_tournament_arg(), json_body())
    return jsonify(meta.to_dict())


@bp.route("/tournament/rename", methods=["POST"])
def rename_tournament() -> Any:
    payload = json_body()
    result = TournamentService.rename_tournament(
        payload.get("oldName"), payload.get("newName")
    )
    return jsonify(result)


@bp.route("/tournament/delete", methods=["POST"])
def delete_tournament() -> Any:
    """Delete a tournament. Succeeds even if it does not exist."""
    name = json_body().get("name")
    TournamentService.delete_tournament(name)
    return jsonify({"deleted": name})


@bp.route("/signup", methods=["POST"])
def signup() -> Any:
    """Register a participant."""
    participants = TournamentService.signup(_tournament_arg(), json_body())
    return jsonify({"participants": [p.to_dict() for p in participants]})


@bp.route("/participants", methods=["GET"])
def list_participants() -> Any:
    participants = TournamentService.list_participants(_tournament_arg())
    return jsonify({"participants": [p.to_dict() for p in participants]})


@bp.route("/participants/paged", methods=["GET"])
def paged_participants() -> Any:
    """Return one page of participants."""
    page = parse_int(request.args.get("page"), "page", DEFAULT_PAGE)
    per_page = parse_int(request.args.get("perPage"), "perPage", DEFAULT_PER_PAGE)
    result = TournamentService.paged_participants(_tournament_arg(), page, per_page)
    result["participants"] = [p.to_dict() for p in result["participants"]]
    return jsonify(result)


@bp.route("/generate", methods=["POST"])
def generate_bracket() -> Any:
    """Seed the bracket and create round one."""
    name = _tournament_arg()
    payload = json_body()
    reseed = payload.get("reseed") is True or request.args.get("reseed") in ("1", "true")
    round_number, pairs = TournamentService.generate_bracket(
        name, seeding=_seeding(payload), reseed=reseed
    )
    return jsonify({"round": round_number, "matches": [list(p) for p in pairs]})


@bp.route("/bracket", methods=["GET"])
def get_bracket() -> Any:
    """Return the pairings of the current round."""
    return jsonify(TournamentService.get_bracket(_tournament_arg()))


@bp.route("/matches", methods=["GET"])
def list_matches() -> Any:
    """List the match history, optionally filtered by round."""
    round_number = parse_int(request.args.get("round"), "round")
    matches = TournamentService.list_matches(_tournament_arg(), round_number)
    return jsonify({"matches": [m.to_dict() for m in matches]})


@bp.route("/result", methods=["POST"])
def submit_result() -> Any:
    """Record a match result and advance the tournament when a round ends."""
    name = _tournament_arg()
    payload = json_body()
    match_index = parse_int(payload.get("matchIndex"), "matchIndex")
    if match_index is None:
        raise ValidationError("matchIndex required.", kind="MissingFields")
    scores = payload.get("scores")
    if scores is not None and not isinstance(scores, list):
        raise ValidationError("scores must be a list.", kind="InvalidParameter")
    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be text.", kind="InvalidParameter")

    tournament, outcome = TournamentService.submit_result(
        name, match_index, payload.get("winner"), scores=scores, notes=notes
    )
    if outcome.finished:
        current_app.logger.info(f"Tournament '{tournament.name}' finished.")
        if current_app.config["NOTIFY_RESULTS"]:
            TournamentService.notify_results(tournament)

    return jsonify(
        {
            "match": outcome.match.to_dict(),
            "advance": outcome.status,
            "round": outcome.round_number,
        }
    )


@bp.route("/match/chat", methods=["POST"])
def add_match_chat() -> Any:
    """Append a chat line to a match."""
    name = _tournament_arg()
    match_index = parse_int(request.args.get("matchIndex"), "matchIndex")
    round_number = parse_int(request.args.get("round"), "round")
    if match_index is None or round_number is None:
        raise ValidationError("matchIndex and round required.", kind="MissingFields")
    payload = json_body()
    chat = TournamentService.add_match_chat(
        name, match_index, round_number, payload.get("user"), payload.get("message")
    )
    return jsonify({"chat": [entry.to_dict() for entry in chat]})


@bp.route("/standings", methods=["GET"])
def get_standings() -> Any:
    return jsonify({"standings": TournamentService.get_standings(_tournament_arg())})


@bp.route("/export", methods=["GET"])
def export_tournament() -> Any:
    """Download the full tournament document."""
    name = _tournament_arg()
    response = jsonify(TournamentService.export_tournament(name))
    response.headers["Content-Disposition"] = (
        f"attachment; filename={sanitize_name(name)}.json"
    )
    return response


@bp.route("/import", methods=["POST"])
def import_tournament() -> Any:
    """Create a tournament from an exported document."""
    payload = json_body()
    imported = TournamentService.import_tournament(
        payload.get("name"), payload.get("data")
    )
    return jsonify({"imported": imported}), 201
