"""Tournament blueprint."""

from flask import Blueprint

bp = Blueprint("tournament", __name__)

from . import routes  # noqa: E402, F401
from .models import Match, Participant, Tournament, TournamentStatus  # noqa: E402
from .services import TournamentService  # noqa: E402

__all__ = [
    "Match",
    "Participant",
    "Tournament",
    "TournamentService",
    "TournamentStatus",
    "routes",
]
