"""Data models for the tournament blueprint.

A tournament is stored as a single JSON document. These dataclasses are the
typed view of that document; ``to_dict``/``from_dict`` convert between the
two using the document's camelCase keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from bracketeer.core.types import FieldMap


class DocumentFormatError(ValueError):
    """Raised when a document does not have the shape of a tournament."""


class TournamentStatus(str, Enum):
    """Lifecycle of a tournament. Only ever moves forward."""

    REGISTRATION_OPEN = "Registration Open"
    IN_PROGRESS = "In Progress"
    FINISHED = "Finished"


Pair = tuple[str, Optional[str]]


def _field(data: Any, key: str, kind: type | tuple[type, ...], where: str) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise DocumentFormatError(f"{where} is missing '{key}'.")
    value = data[key]
    if isinstance(value, bool) and kind is int:
        raise DocumentFormatError(f"{where}.{key} must be an integer.")
    if not isinstance(value, kind):
        raise DocumentFormatError(f"{where}.{key} has the wrong type.")
    return value


def _optional(data: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = data.get(key)
    if value is None:
        return default() if callable(default) else default
    if not isinstance(value, kind):
        raise DocumentFormatError(f"'{key}' has the wrong type.")
    return value


def _pair(value: Any, where: str) -> Pair:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise DocumentFormatError(f"{where} must be a pair of players.")
    first, second = value
    if not isinstance(first, str) or not (second is None or isinstance(second, str)):
        raise DocumentFormatError(f"{where} must hold player names.")
    return (first, second)


@dataclass
class Participant:
    """A registered player."""

    name: str
    email: str = ""
    team: str = ""
    extra: FieldMap = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "team": self.team,
            "extra": dict(self.extra),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Participant:
        return cls(
            name=_field(data, "name", str, "participant"),
            email=_optional(data, "email", str, ""),
            team=_optional(data, "team", str, ""),
            extra=_optional(data, "extra", dict, dict),
        )


@dataclass
class ChatEntry:
    """One line of a match chat."""

    user: str
    message: str
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {"user": self.user, "message": self.message, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Any) -> ChatEntry:
        return cls(
            user=_field(data, "user", str, "chat entry"),
            message=_field(data, "message", str, "chat entry"),
            timestamp=_field(data, "timestamp", str, "chat entry"),
        )


@dataclass
class Match:
    """A pairing within one round. ``winner`` is write-once."""

    round: int
    match_index: int
    players: Pair
    winner: str | None = None
    scores: list[Any] = field(default_factory=list)
    chat: list[ChatEntry] = field(default_factory=list)
    notes: str = ""

    @property
    def is_decided(self) -> bool:
        return self.winner is not None

    @property
    def is_bye(self) -> bool:
        return self.players[1] is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "round": self.round,
            "matchIndex": self.match_index,
            "players": list(self.players),
            "winner": self.winner,
            "scores": list(self.scores),
            "chat": [entry.to_dict() for entry in self.chat],
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Match:
        winner = data.get("winner") if isinstance(data, dict) else None
        if winner is not None and (not isinstance(winner, str) or not winner):
            raise DocumentFormatError("match winner must be a player name.")
        return cls(
            round=_field(data, "round", int, "match"),
            match_index=_field(data, "matchIndex", int, "match"),
            players=_pair(_field(data, "players", list, "match"), "match.players"),
            winner=winner,
            scores=_optional(data, "scores", list, list),
            chat=[ChatEntry.from_dict(e) for e in _optional(data, "chat", list, list)],
            notes=_optional(data, "notes", str, ""),
        )


@dataclass
class TournamentMeta:
    """Descriptive fields and lifecycle status of a tournament."""

    name: str
    description: str = ""
    theme_color: str = ""
    stream_url: str = ""
    sponsor: FieldMap = field(default_factory=dict)
    status: TournamentStatus = TournamentStatus.REGISTRATION_OPEN
    custom_fields: FieldMap = field(default_factory=dict)

    # Document key -> attribute, for the fields callers may edit.
    EDITABLE = {
        "description": "description",
        "themeColor": "theme_color",
        "streamUrl": "stream_url",
        "sponsor": "sponsor",
        "customFields": "custom_fields",
    }

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "themeColor": self.theme_color,
            "streamUrl": self.stream_url,
            "sponsor": dict(self.sponsor),
            "status": self.status.value,
            "customFields": dict(self.custom_fields),
        }

    @classmethod
    def from_dict(cls, data: Any) -> TournamentMeta:
        raw_status = _field(data, "status", str, "meta")
        try:
            status = TournamentStatus(raw_status)
        except ValueError as e:
            raise DocumentFormatError(f"Unknown tournament status '{raw_status}'.") from e
        return cls(
            name=_field(data, "name", str, "meta"),
            description=_optional(data, "description", str, ""),
            theme_color=_optional(data, "themeColor", str, ""),
            stream_url=_optional(data, "streamUrl", str, ""),
            sponsor=_optional(data, "sponsor", dict, dict),
            status=status,
            custom_fields=_optional(data, "customFields", dict, dict),
        )


@dataclass
class Tournament:
    """The full state of one tournament.

    ``bracket`` mirrors the pairings of the current round only, while
    ``matches`` keeps every round ever played.
    """

    meta: TournamentMeta
    participants: list[Participant] = field(default_factory=list)
    bracket: list[Pair] = field(default_factory=list)
    matches: list[Match] = field(default_factory=list)
    round_number: int = 0
    standings: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def status(self) -> TournamentStatus:
        return self.meta.status

    def participant_names(self) -> list[str]:
        return [p.name for p in self.participants]

    def find_participant(self, name: str) -> Participant | None:
        wanted = name.strip().lower()
        for participant in self.participants:
            if participant.name.strip().lower() == wanted:
                return participant
        return None

    def round_matches(self, round_number: int) -> list[Match]:
        return [m for m in self.matches if m.round == round_number]

    def current_round_matches(self) -> list[Match]:
        return self.round_matches(self.round_number)

    def find_match(self, round_number: int, match_index: int) -> Match | None:
        for match in self.matches:
            if match.round == round_number and match.match_index == match_index:
                return match
        return None

    def validate(self) -> None:
        """Check the rules the bracket engine relies on.

        Raises:
            DocumentFormatError: If the state could not have been reached by
                playing the tournament.
        """
        seen = set()
        for match in self.matches:
            slot = (match.round, match.match_index)
            if slot in seen:
                raise DocumentFormatError(
                    f"Round {match.round} has two matches with index {match.match_index}."
                )
            seen.add(slot)
            if match.winner is not None and match.winner not in match.players:
                raise DocumentFormatError(
                    f"Winner '{match.winner}' is not a player of round "
                    f"{match.round} match {match.match_index}."
                )

        last_round = max((m.round for m in self.matches), default=0)
        if self.round_number != last_round:
            raise DocumentFormatError(
                f"roundNumber is {self.round_number} but the last round played "
                f"is {last_round}."
            )
        current = sorted(self.current_round_matches(), key=lambda m: m.match_index)
        if self.bracket != [m.players for m in current]:
            raise DocumentFormatError("bracket does not match the current round.")

        if self.status is TournamentStatus.FINISHED and not self.standings:
            raise DocumentFormatError("A finished tournament needs standings.")
        if self.status is TournamentStatus.REGISTRATION_OPEN and self.matches:
            raise DocumentFormatError("An open tournament cannot have matches.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "meta": self.meta.to_dict(),
            "participants": [p.to_dict() for p in self.participants],
            "bracket": [list(pair) for pair in self.bracket],
            "matches": [m.to_dict() for m in self.matches],
            "roundNumber": self.round_number,
            "standings": list(self.standings),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Tournament:
        if not isinstance(data, dict):
            raise DocumentFormatError("A tournament document must be an object.")
        standings = _optional(data, "standings", list, list)
        if not all(isinstance(name, str) for name in standings):
            raise DocumentFormatError("standings must list player names.")
        return cls(
            meta=TournamentMeta.from_dict(_field(data, "meta", dict, "tournament")),
            participants=[
                Participant.from_dict(p)
                for p in _field(data, "participants", list, "tournament")
            ],
            bracket=[
                _pair(pair, "bracket slot")
                for pair in _field(data, "bracket", list, "tournament")
            ],
            matches=[
                Match.from_dict(m) for m in _field(data, "matches", list, "tournament")
            ],
            round_number=_field(data, "roundNumber", int, "tournament"),
            standings=standings,
        )
