"""Single-elimination bracket engine.

Pure functions over a :class:`Tournament`: seeding, pairing, round
generation, result application and advancement. Nothing here touches
storage; the service layer loads and saves around these calls.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Any

from bracketeer.core.constants import MIN_PARTICIPANTS
from bracketeer.errors import ConflictError, NotFoundError, ValidationError

from .models import Match, Pair, Tournament, TournamentStatus

logger = logging.getLogger(__name__)

PENDING = "pending"
NEXT_ROUND = "next_round"
FINISHED = "finished"


@dataclass
class AdvanceOutcome:
    """What a recorded result did to the tournament."""

    match: Match
    status: str
    round_number: int

    @property
    def finished(self) -> bool:
        return self.status == FINISHED


def seed_order(
    names: list[str],
    seeding: list[str] | None = None,
    rng: random.Random | None = None,
) -> list[str]:
    """Return the order in which ``names`` fill the bracket.

    An explicit ``seeding`` must name every participant exactly once
    (case-insensitive); the registered spelling is used. Without one the
    names are shuffled uniformly.
    """
    if seeding is None:
        seeds = list(names)
        (rng or random).shuffle(seeds)
        return seeds

    registered = {name.strip().lower(): name for name in names}
    seeds = []
    seen = set()
    for entry in seeding:
        key = entry.strip().lower() if isinstance(entry, str) else None
        if key not in registered:
            raise ValidationError(
                f"Seeding names '{entry}', who is not a participant.",
                kind="InvalidSeeding",
            )
        if key in seen:
            raise ValidationError(
                f"Seeding names '{entry}' more than once.", kind="InvalidSeeding"
            )
        seen.add(key)
        seeds.append(registered[key])

    if len(seeds) != len(registered):
        raise ValidationError(
            "Seeding must list every participant.", kind="InvalidSeeding"
        )
    return seeds


def pair_seeds(seeds: list[str]) -> list[Pair]:
    """Pair consecutive seeds; an odd last seed gets a bye (``None``)."""
    return [
        (seeds[i], seeds[i + 1] if i + 1 < len(seeds) else None)
        for i in range(0, len(seeds), 2)
    ]


def build_round(pairs: list[Pair], round_number: int) -> list[Match]:
    """Create one pending match per pairing, indexed from zero."""
    return [
        Match(round=round_number, match_index=index, players=pair)
        for index, pair in enumerate(pairs)
    ]


def generate(
    tournament: Tournament,
    seeding: list[str] | None = None,
    rng: random.Random | None = None,
    reseed: bool = False,
) -> list[Pair]:
    """Seed the participants and start round one.

    Allowed while registration is open. An in-progress tournament is only
    regenerated when ``reseed`` is set, which throws away its match history.
    """
    if tournament.status is TournamentStatus.FINISHED:
        raise ConflictError(
            "The tournament has already finished.", kind="TournamentFinished"
        )
    if tournament.status is TournamentStatus.IN_PROGRESS and not reseed:
        raise ConflictError(
            "The bracket has already been generated.", kind="BracketAlreadyGenerated"
        )
    if len(tournament.participants) < MIN_PARTICIPANTS:
        raise ValidationError(
            f"Need at least {MIN_PARTICIPANTS} participants.",
            kind="InsufficientParticipants",
        )

    seeds = seed_order(tournament.participant_names(), seeding, rng)
    pairs = pair_seeds(seeds)

    tournament.bracket = pairs
    tournament.matches = build_round(pairs, 1)
    tournament.round_number = 1
    tournament.meta.status = TournamentStatus.IN_PROGRESS
    logger.info(
        f"Generated round 1 of '{tournament.name}' with {len(pairs)} matches."
    )
    return pairs


def apply_result(
    tournament: Tournament,
    match_index: int,
    winner: Any,
    scores: list[Any] | None = None,
    notes: str | None = None,
) -> AdvanceOutcome:
    """Record the winner of a current-round match, then try to advance.

    Falsy ``scores`` or ``notes`` keep the values already stored.
    """
    match = tournament.find_match(tournament.round_number, match_index)
    if match is None:
        raise NotFoundError(
            f"No match {match_index} in round {tournament.round_number}.",
            kind="MatchNotFound",
        )
    if winner is None or winner not in match.players:
        raise ValidationError(
            "Winner must be one of the players.", kind="InvalidWinner"
        )
    if match.is_decided:
        raise ConflictError(
            "Winner already set for this match.", kind="ResultAlreadySet"
        )

    match.winner = winner
    if scores:
        match.scores = list(scores)
    if notes:
        match.notes = notes

    status = advance(tournament)
    return AdvanceOutcome(match=match, status=status, round_number=tournament.round_number)


def advance(tournament: Tournament) -> str:
    """Move to the next round, or finish, once the current round is decided."""
    current = sorted(tournament.current_round_matches(), key=lambda m: m.match_index)
    if not current or not all(m.is_decided for m in current):
        return PENDING

    winners = [m.winner for m in current]
    if len(winners) > 1:
        next_round = tournament.round_number + 1
        pairs = pair_seeds(winners)
        tournament.matches.extend(build_round(pairs, next_round))
        tournament.bracket = pairs
        tournament.round_number = next_round
        logger.info(
            f"'{tournament.name}' advanced to round {next_round} "
            f"with {len(pairs)} matches."
        )
        return NEXT_ROUND

    champion = winners[0]
    tournament.meta.status = TournamentStatus.FINISHED
    tournament.standings = final_standings(tournament, champion)
    logger.info(f"'{tournament.name}' finished; champion is {champion}.")
    return FINISHED


def final_standings(tournament: Tournament, champion: str) -> list[str]:
    """Champion first, then everyone else in registration order."""
    return [champion] + [
        name for name in tournament.participant_names() if name != champion
    ]
