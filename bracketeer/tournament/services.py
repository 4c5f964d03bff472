"""Service layer for tournament business logic."""

from __future__ import annotations

import copy
import datetime
import logging
import random
from typing import TYPE_CHECKING, Any

from bracketeer.core.constants import (
    DEFAULT_PAGE,
    DEFAULT_PER_PAGE,
    RESULTS_PODIUM_SIZE,
    TOURNAMENTS_COLLECTION,
)
from bracketeer.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from bracketeer.storage import document_locks, get_store, sanitize_name
from bracketeer.utils import EmailError, send_email

from . import bracket
from .models import (
    ChatEntry,
    DocumentFormatError,
    Participant,
    Tournament,
    TournamentMeta,
    TournamentStatus,
)

if TYPE_CHECKING:
    from bracketeer.storage import DocumentStore

    from .bracket import AdvanceOutcome
    from .models import Match, Pair

logger = logging.getLogger(__name__)


def _lock_key(key: str) -> str:
    return f"{TOURNAMENTS_COLLECTION}:{key}"


def _require_name(name: str | None, what: str = "Tournament name") -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{what} required.", kind="MissingName")
    return name.strip()


class TournamentService:
    """Handles business logic and data access for tournaments.

    Every mutation follows the same shape: lock the tournament key, load the
    document, change it through the bracket engine and write the whole
    document back.
    """

    @staticmethod
    def _store(store: DocumentStore | None) -> DocumentStore:
        return store if store is not None else get_store(TOURNAMENTS_COLLECTION)

    @staticmethod
    def _load(store: DocumentStore, name: str | None) -> tuple[str, Tournament]:
        """Fetch and decode a tournament, returning its key too."""
        key = sanitize_name(_require_name(name))
        document = store.get(key)
        if document is None:
            raise NotFoundError("Tournament not found.")
        try:
            return key, Tournament.from_dict(document)
        except DocumentFormatError as e:
            logger.error(f"Stored tournament '{key}' is corrupt: {e}")
            raise InternalError(
                f"Stored tournament '{key}' is corrupt.", kind="CorruptDocument"
            ) from e

    @staticmethod
    def create_tournament(
        name: str | None, fields: dict[str, Any] | None = None, store: DocumentStore | None = None
    ) -> TournamentMeta:
        """Create an empty tournament open for registration."""
        store = TournamentService._store(store)
        display_name = _require_name(name)
        key = sanitize_name(display_name)
        fields = fields or {}

        meta = TournamentMeta(name=display_name)
        TournamentService._apply_meta_fields(meta, fields, strict=False)

        with document_locks.hold(_lock_key(key)):
            if store.get(key) is not None:
                raise ConflictError(
                    "Tournament already exists.", kind="DuplicateTournament"
                )
            store.put(key, Tournament(meta=meta).to_dict())

        logger.info(f"Created tournament '{display_name}' as '{key}'.")
        return meta

    @staticmethod
    def _apply_meta_fields(
        meta: TournamentMeta, fields: dict[str, Any], strict: bool = True
    ) -> None:
        for doc_key, value in fields.items():
            attr = TournamentMeta.EDITABLE.get(doc_key)
            if attr is None:
                if doc_key in ("name", "status"):
                    if strict:
                        raise ValidationError(
                            f"'{doc_key}' cannot be changed here.", kind="ReadOnlyField"
                        )
                    continue
                if strict:
                    raise ValidationError(
                        f"Unknown tournament field '{doc_key}'.", kind="UnknownField"
                    )
                continue
            if value is None:
                continue
            expected = dict if attr in ("sponsor", "custom_fields") else str
            if not isinstance(value, expected):
                raise ValidationError(
                    f"'{doc_key}' has the wrong type.", kind="InvalidParameter"
                )
            setattr(meta, attr, value)

    @staticmethod
    def list_tournaments(store: DocumentStore | None = None) -> list[str]:
        """Return the keys of every stored tournament."""
        return TournamentService._store(store).list_keys()

    @staticmethod
    def get_tournament(name: str | None, store: DocumentStore | None = None) -> Tournament:
        """Load a full tournament."""
        _, tournament = TournamentService._load(TournamentService._store(store), name)
        return tournament

    @staticmethod
    def get_tournament_meta(
        name: str | None, store: DocumentStore | None = None
    ) -> TournamentMeta:
        return TournamentService.get_tournament(name, store).meta

    @staticmethod
    def patch_tournament_meta(
        name: str | None, fields: dict[str, Any], store: DocumentStore | None = None
    ) -> TournamentMeta:
        """Merge display fields into the tournament meta."""
        store = TournamentService._store(store)
        key = sanitize_name(_require_name(name))
        with document_locks.hold(_lock_key(key)):
            key, tournament = TournamentService._load(store, name)
            TournamentService._apply_meta_fields(tournament.meta, fields)
            store.put(key, tournament.to_dict())
        return tournament.meta

    @staticmethod
    def rename_tournament(
        old_name: str | None, new_name: str | None, store: DocumentStore | None = None
    ) -> dict[str, str]:
        """Move a tournament to a new key and rewrite its name."""
        store = TournamentService._store(store)
        if not isinstance(old_name, str) or not old_name.strip() or not isinstance(
            new_name, str
        ) or not new_name.strip():
            raise ValidationError(
                "Both oldName and newName required.", kind="MissingFields"
            )
        old_key = sanitize_name(old_name)
        new_key = sanitize_name(new_name)

        with document_locks.hold(_lock_key(old_key), _lock_key(new_key)):
            _, tournament = TournamentService._load(store, old_name)
            if store.get(new_key) is not None:
                raise ConflictError(
                    "New tournament name already exists.", kind="DuplicateTournament"
                )
            tournament.meta.name = new_name.strip()
            store.put(new_key, tournament.to_dict())
            store.delete(old_key)

        logger.info(f"Renamed tournament '{old_key}' to '{new_key}'.")
        return {"oldName": old_name, "newName": new_name}

    @staticmethod
    def delete_tournament(name: str | None, store: DocumentStore | None = None) -> None:
        """Delete a tournament; deleting a missing one is not an error."""
        store = TournamentService._store(store)
        key = sanitize_name(_require_name(name))
        with document_locks.hold(_lock_key(key)):
            store.delete(key)
        logger.info(f"Deleted tournament '{key}'.")

    @staticmethod
    def signup(
        name: str | None, participant: dict[str, Any], store: DocumentStore | None = None
    ) -> list[Participant]:
        """Register a participant while registration is open."""
        store = TournamentService._store(store)
        key = sanitize_name(_require_name(name))
        with document_locks.hold(_lock_key(key)):
            key, tournament = TournamentService._load(store, name)
            player_name = _require_name(participant.get("name"), "Name")
            if tournament.status is not TournamentStatus.REGISTRATION_OPEN:
                raise ConflictError(
                    "Registration is closed.", kind="RegistrationClosed"
                )
            if tournament.find_participant(player_name) is not None:
                raise ConflictError(
                    "Participant already signed up.", kind="DuplicateParticipant"
                )
            try:
                entry = Participant.from_dict({**participant, "name": player_name})
            except DocumentFormatError as e:
                raise ValidationError(str(e), kind="InvalidParameter") from e
            tournament.participants.append(entry)
            store.put(key, tournament.to_dict())
        return tournament.participants

    @staticmethod
    def list_participants(
        name: str | None, store: DocumentStore | None = None
    ) -> list[Participant]:
        return TournamentService.get_tournament(name, store).participants

    @staticmethod
    def paged_participants(
        name: str | None,
        page: int = DEFAULT_PAGE,
        per_page: int = DEFAULT_PER_PAGE,
        store: DocumentStore | None = None,
    ) -> dict[str, Any]:
        """Return one 1-indexed page of participants.

        Pages past the end are empty rather than an error.
        """
        if page < 1 or per_page < 1:
            raise ValidationError(
                "page and perPage must be positive.", kind="InvalidPagination"
            )
        participants = TournamentService.list_participants(name, store)
        start = (page - 1) * per_page
        return {
            "participants": participants[start : start + per_page],
            "total": len(participants),
            "page": page,
            "perPage": per_page,
        }

    @staticmethod
    def generate_bracket(
        name: str | None,
        seeding: list[str] | None = None,
        reseed: bool = False,
        rng: random.Random | None = None,
        store: DocumentStore | None = None,
    ) -> tuple[int, list[Pair]]:
        """Seed the bracket and start round one."""
        store = TournamentService._store(store)
        key = sanitize_name(_require_name(name))
        with document_locks.hold(_lock_key(key)):
            key, tournament = TournamentService._load(store, name)
            pairs = bracket.generate(tournament, seeding=seeding, rng=rng, reseed=reseed)
            store.put(key, tournament.to_dict())
        return tournament.round_number, pairs

    @staticmethod
    def get_bracket(name: str | None, store: DocumentStore | None = None) -> dict[str, Any]:
        tournament = TournamentService.get_tournament(name, store)
        return {
            "tournamentName": tournament.name,
            "round": tournament.round_number,
            "matches": [list(pair) for pair in tournament.bracket],
        }

    @staticmethod
    def list_matches(
        name: str | None, round_number: int | None = None, store: DocumentStore | None = None
    ) -> list[Match]:
        """List the match history, optionally for a single round."""
        tournament = TournamentService.get_tournament(name, store)
        if round_number is None:
            return tournament.matches
        return tournament.round_matches(round_number)

    @staticmethod
    def submit_result(
        name: str | None,
        match_index: int,
        winner: Any,
        scores: list[Any] | None = None,
        notes: str | None = None,
        store: DocumentStore | None = None,
    ) -> tuple[Tournament, AdvanceOutcome]:
        """Record a match winner and advance the tournament if the round is over."""
        store = TournamentService._store(store)
        key = sanitize_name(_require_name(name))
        with document_locks.hold(_lock_key(key)):
            key, tournament = TournamentService._load(store, name)
            outcome = bracket.apply_result(
                tournament, match_index, winner, scores=scores, notes=notes
            )
            store.put(key, tournament.to_dict())
        return tournament, outcome

    @staticmethod
    def add_match_chat(
        name: str | None,
        match_index: int,
        round_number: int,
        user: str | None,
        message: str | None,
        store: DocumentStore | None = None,
    ) -> list[ChatEntry]:
        """Append a timestamped chat line to any match in the history."""
        store = TournamentService._store(store)
        key = sanitize_name(_require_name(name))
        with document_locks.hold(_lock_key(key)):
            key, tournament = TournamentService._load(store, name)
            match = tournament.find_match(round_number, match_index)
            if match is None:
                raise NotFoundError("Match not found.", kind="MatchNotFound")
            if not isinstance(user, str) or not user or not isinstance(
                message, str
            ) or not message:
                raise ValidationError(
                    "User and message required.", kind="MissingFields"
                )
            timestamp = datetime.datetime.now(datetime.timezone.utc).isoformat()
            match.chat.append(ChatEntry(user=user, message=message, timestamp=timestamp))
            store.put(key, tournament.to_dict())
        return match.chat

    @staticmethod
    def get_standings(name: str | None, store: DocumentStore | None = None) -> list[str]:
        return TournamentService.get_tournament(name, store).standings

    @staticmethod
    def export_tournament(
        name: str | None, store: DocumentStore | None = None
    ) -> dict[str, Any]:
        """Return the full tournament document."""
        return TournamentService.get_tournament(name, store).to_dict()

    @staticmethod
    def import_tournament(
        name: str | None, document: Any, store: DocumentStore | None = None
    ) -> str:
        """Store an exported document under a new name."""
        store = TournamentService._store(store)
        if not isinstance(name, str) or not name.strip() or not document:
            raise ValidationError("Name and data required.", kind="MissingFields")
        display_name = name.strip()
        key = sanitize_name(display_name)
        try:
            tournament = Tournament.from_dict(copy.deepcopy(document))
            tournament.validate()
        except DocumentFormatError as e:
            raise ValidationError(
                f"Not a tournament document: {e}", kind="MalformedDocument"
            ) from e
        tournament.meta.name = display_name

        with document_locks.hold(_lock_key(key)):
            if store.get(key) is not None:
                raise ConflictError(
                    "Tournament already exists.", kind="DuplicateTournament"
                )
            store.put(key, tournament.to_dict())

        logger.info(f"Imported tournament '{display_name}' as '{key}'.")
        return display_name

    @staticmethod
    def notify_results(tournament: Tournament) -> int:
        """E-mail final standings to every participant with an address.

        Returns how many e-mails were sent. Failures are logged, not raised.
        """
        champion = tournament.standings[0] if tournament.standings else "No one"
        podium = tournament.standings[:RESULTS_PODIUM_SIZE]
        sent = 0
        for participant in tournament.participants:
            if not participant.email:
                continue
            try:
                send_email(
                    to=participant.email,
                    subject=f"Results: {tournament.name}",
                    template="email/tournament_results.html",
                    participant=participant,
                    tournament=tournament,
                    winner_name=champion,
                    standings=podium,
                )
                sent += 1
            except EmailError as e:
                logger.error(f"Email to {participant.email} failed: {e}")
        return sent
