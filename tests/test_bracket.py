"""Tests for the bracket engine."""

from __future__ import annotations

import math
import random
import unittest

from bracketeer.errors import ConflictError, NotFoundError, ValidationError
from bracketeer.tournament import bracket
from bracketeer.tournament.models import (
    Participant,
    Tournament,
    TournamentMeta,
    TournamentStatus,
)


def make_tournament(*names: str) -> Tournament:
    return Tournament(
        meta=TournamentMeta(name="Cup"),
        participants=[Participant(name=n) for n in names],
    )


class SeedingTestCase(unittest.TestCase):
    """Seed order and pairing."""

    def test_pair_seeds_even(self) -> None:
        self.assertEqual(
            bracket.pair_seeds(["a", "b", "c", "d"]), [("a", "b"), ("c", "d")]
        )

    def test_pair_seeds_odd_gives_trailing_bye(self) -> None:
        self.assertEqual(
            bracket.pair_seeds(["a", "b", "c"]), [("a", "b"), ("c", None)]
        )

    def test_random_seed_order_is_a_permutation(self) -> None:
        names = ["a", "b", "c", "d", "e"]
        seeds = bracket.seed_order(names, rng=random.Random(7))
        self.assertCountEqual(seeds, names)

    def test_random_seed_order_uses_injected_rng(self) -> None:
        names = [f"p{i}" for i in range(8)]
        first = bracket.seed_order(names, rng=random.Random(42))
        second = bracket.seed_order(names, rng=random.Random(42))
        self.assertEqual(first, second)

    def test_explicit_seeding_uses_registered_spelling(self) -> None:
        seeds = bracket.seed_order(["Alice", "Bob"], seeding=[" bob", "ALICE "])
        self.assertEqual(seeds, ["Bob", "Alice"])

    def test_seeding_with_stranger_is_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            bracket.seed_order(["Alice", "Bob"], seeding=["Alice", "Mallory"])
        self.assertEqual(ctx.exception.kind, "InvalidSeeding")

    def test_seeding_with_repeat_is_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            bracket.seed_order(["Alice", "Bob"], seeding=["Alice", "alice"])
        self.assertEqual(ctx.exception.kind, "InvalidSeeding")

    def test_partial_seeding_is_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            bracket.seed_order(["Alice", "Bob", "Carol"], seeding=["Alice", "Bob"])
        self.assertEqual(ctx.exception.kind, "InvalidSeeding")


class GenerateTestCase(unittest.TestCase):
    """Round one generation."""

    def test_every_participant_placed_once(self) -> None:
        for count in range(2, 12):
            names = [f"p{i}" for i in range(count)]
            tournament = make_tournament(*names)

            pairs = bracket.generate(tournament, rng=random.Random(count))

            self.assertEqual(len(pairs), math.ceil(count / 2))
            placed = [p for pair in pairs for p in pair if p is not None]
            self.assertCountEqual(placed, names)
            byes = [pair for pair in pairs if pair[1] is None]
            self.assertEqual(len(byes), count % 2)

    def test_generate_sets_round_and_status(self) -> None:
        tournament = make_tournament("a", "b", "c", "d")

        pairs = bracket.generate(tournament, seeding=["a", "b", "c", "d"])

        self.assertEqual(tournament.round_number, 1)
        self.assertIs(tournament.status, TournamentStatus.IN_PROGRESS)
        self.assertEqual(tournament.bracket, pairs)
        self.assertEqual([m.match_index for m in tournament.matches], [0, 1])
        for match in tournament.matches:
            self.assertEqual(match.round, 1)
            self.assertIsNone(match.winner)
            self.assertEqual(match.scores, [])
            self.assertEqual(match.chat, [])
            self.assertEqual(match.notes, "")

    def test_needs_two_participants(self) -> None:
        tournament = make_tournament("solo")
        with self.assertRaises(ValidationError) as ctx:
            bracket.generate(tournament)
        self.assertEqual(ctx.exception.kind, "InsufficientParticipants")
        self.assertEqual(tournament.round_number, 0)

    def test_regenerate_in_progress_is_refused(self) -> None:
        tournament = make_tournament("a", "b")
        bracket.generate(tournament)
        with self.assertRaises(ConflictError) as ctx:
            bracket.generate(tournament)
        self.assertEqual(ctx.exception.kind, "BracketAlreadyGenerated")

    def test_reseed_discards_history(self) -> None:
        tournament = make_tournament("a", "b", "c", "d")
        bracket.generate(tournament, seeding=["a", "b", "c", "d"])
        bracket.apply_result(tournament, 0, "a")

        bracket.generate(tournament, seeding=["d", "c", "b", "a"], reseed=True)

        self.assertEqual(tournament.bracket, [("d", "c"), ("b", "a")])
        self.assertEqual(len(tournament.matches), 2)
        self.assertTrue(all(m.winner is None for m in tournament.matches))
        self.assertIs(tournament.status, TournamentStatus.IN_PROGRESS)

    def test_generate_after_finish_is_refused(self) -> None:
        tournament = make_tournament("a", "b")
        bracket.generate(tournament, seeding=["a", "b"])
        bracket.apply_result(tournament, 0, "a")
        with self.assertRaises(ConflictError) as ctx:
            bracket.generate(tournament, reseed=True)
        self.assertEqual(ctx.exception.kind, "TournamentFinished")


class ApplyResultTestCase(unittest.TestCase):
    """Result recording and advancement."""

    def setUp(self) -> None:
        self.tournament = make_tournament("a", "b", "c", "d")
        bracket.generate(self.tournament, seeding=["a", "b", "c", "d"])

    def test_unknown_match(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            bracket.apply_result(self.tournament, 5, "a")
        self.assertEqual(ctx.exception.kind, "MatchNotFound")

    def test_winner_must_be_a_player(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            bracket.apply_result(self.tournament, 0, "c")
        self.assertEqual(ctx.exception.kind, "InvalidWinner")
        self.assertIsNone(self.tournament.matches[0].winner)

    def test_null_winner_is_invalid(self) -> None:
        tournament = make_tournament("a", "b", "c")
        bracket.generate(tournament, seeding=["a", "b", "c"])
        with self.assertRaises(ValidationError):
            bracket.apply_result(tournament, 1, None)

    def test_result_is_write_once(self) -> None:
        bracket.apply_result(self.tournament, 0, "a")
        with self.assertRaises(ConflictError) as ctx:
            bracket.apply_result(self.tournament, 0, "b")
        self.assertEqual(ctx.exception.kind, "ResultAlreadySet")
        self.assertEqual(self.tournament.matches[0].winner, "a")

    def test_scores_and_notes(self) -> None:
        outcome = bracket.apply_result(
            self.tournament, 0, "a", scores=[[11, 7], [11, 9]], notes="close"
        )
        self.assertEqual(outcome.match.scores, [[11, 7], [11, 9]])
        self.assertEqual(outcome.match.notes, "close")

    def test_falsy_scores_and_notes_leave_values(self) -> None:
        match = self.tournament.matches[0]
        match.scores = [3, 1]
        match.notes = "kept"
        bracket.apply_result(self.tournament, 0, "a", scores=[], notes="")
        self.assertEqual(match.scores, [3, 1])
        self.assertEqual(match.notes, "kept")

    def test_round_stays_open_until_all_decided(self) -> None:
        outcome = bracket.apply_result(self.tournament, 0, "a")
        self.assertEqual(outcome.status, bracket.PENDING)
        self.assertEqual(self.tournament.round_number, 1)

    def test_advances_in_match_index_order(self) -> None:
        bracket.apply_result(self.tournament, 1, "d")
        outcome = bracket.apply_result(self.tournament, 0, "b")

        self.assertEqual(outcome.status, bracket.NEXT_ROUND)
        self.assertEqual(self.tournament.round_number, 2)
        self.assertEqual(self.tournament.bracket, [("b", "d")])
        self.assertEqual(len(self.tournament.matches), 3)
        final = self.tournament.matches[-1]
        self.assertEqual((final.round, final.match_index), (2, 0))

    def test_old_round_match_is_not_current(self) -> None:
        bracket.apply_result(self.tournament, 0, "a")
        bracket.apply_result(self.tournament, 1, "c")
        # Round 2 has only match 0; match 1 belongs to history.
        with self.assertRaises(NotFoundError):
            bracket.apply_result(self.tournament, 1, "c")

    def test_final_result_finishes(self) -> None:
        bracket.apply_result(self.tournament, 0, "a")
        bracket.apply_result(self.tournament, 1, "d")
        outcome = bracket.apply_result(self.tournament, 0, "d")

        self.assertTrue(outcome.finished)
        self.assertIs(self.tournament.status, TournamentStatus.FINISHED)
        self.assertEqual(self.tournament.standings, ["d", "a", "b", "c"])
        self.assertEqual(self.tournament.round_number, 2)


class ByeTestCase(unittest.TestCase):
    """Byes are never decided automatically."""

    def test_three_player_cup(self) -> None:
        tournament = make_tournament("Alice", "Bob", "Carol")
        bracket.generate(tournament, seeding=["Alice", "Bob", "Carol"])

        self.assertEqual(len(tournament.matches), 2)
        self.assertEqual(tournament.matches[1].players, ("Carol", None))

        self.assertEqual(bracket.apply_result(tournament, 1, "Carol").status, "pending")
        self.assertEqual(
            bracket.apply_result(tournament, 0, "Bob").status, "next_round"
        )
        self.assertEqual(tournament.round_number, 2)
        self.assertEqual(len(tournament.round_matches(2)), 1)

        outcome = bracket.apply_result(tournament, 0, "Carol")
        self.assertTrue(outcome.finished)
        self.assertEqual(tournament.standings[0], "Carol")
        self.assertEqual(len(tournament.standings), 3)

    def test_undecided_bye_blocks_advancement(self) -> None:
        tournament = make_tournament("a", "b", "c")
        bracket.generate(tournament, seeding=["a", "b", "c"])

        outcome = bracket.apply_result(tournament, 0, "a")

        self.assertEqual(outcome.status, bracket.PENDING)
        self.assertEqual(tournament.round_number, 1)
        self.assertIsNone(tournament.matches[1].winner)

    def test_odd_winners_get_a_bye_next_round(self) -> None:
        tournament = make_tournament(*"abcdef")
        bracket.generate(tournament, seeding=list("abcdef"))
        for index, winner in enumerate(["a", "c", "e"]):
            bracket.apply_result(tournament, index, winner)

        self.assertEqual(tournament.bracket, [("a", "c"), ("e", None)])


if __name__ == "__main__":
    unittest.main()
