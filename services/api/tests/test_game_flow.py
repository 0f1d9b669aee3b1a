import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import text_question
from trivia_live.errors import GameNotFoundError, RoundNotFoundError
from trivia_live.services import game_flow, scoring
from trivia_live.services.answers import submit_answer
from trivia_live.services.game_flow import TRANSITIONS


def two_rounds():
    return [
        [text_question("Paris"), text_question("Rome")],
        [text_question("Oslo")],
    ]


async def game_of(storage, seeded):
    return await storage.get_game(seeded.game.game_id)


class TestTransitionTable:
    def test_every_state_has_an_entry(self):
        assert set(TRANSITIONS) == {"lobby", "in_round", "grading", "between_rounds", "finished"}

    def test_grading_cannot_loop_on_itself(self):
        assert "grading" not in TRANSITIONS["grading"]

    def test_finished_is_terminal(self):
        assert TRANSITIONS["finished"] == frozenset()

    def test_lobby_is_only_reached_by_reset(self):
        assert all("lobby" not in targets for targets in TRANSITIONS.values())


class TestFullGame:
    async def test_plays_through_two_rounds(self, storage, seed_game):
        seeded = await seed_game(two_rounds())
        game_id = seeded.game.game_id
        alpha = seeded.teams[0]

        result = await game_flow.start_round(storage, game_id)
        assert (result.success, result.state) == (True, "in_round")
        assert result.next_round.round_id == seeded.rounds[0].round_id

        # Question 1 of round 1
        paris = seeded.questions[0][0]
        await submit_answer(storage, paris.question_id, alpha.team_id, raw_answer="Paris")
        assert (await game_flow.close_submissions(storage, game_id)).state == "grading"
        await scoring.auto_grade(storage, paris.question_id)
        result = await game_flow.finalize_and_advance(storage, game_id)
        assert (result.success, result.state, result.finalized_count) == (True, "in_round", 1)
        assert (await game_of(storage, seeded)).current_question_index == 1

        # Question 2 of round 1 is the last in the round
        await game_flow.close_submissions(storage, game_id)
        result = await game_flow.finalize_and_advance(storage, game_id)
        assert (result.state, result.finalized_count) == ("between_rounds", 0)
        assert result.next_round.round_id == seeded.rounds[1].round_id

        result = await game_flow.start_next_round(storage, game_id)
        assert result.state == "in_round"
        game = await game_of(storage, seeded)
        assert (game.current_round_id, game.current_question_index) == (seeded.rounds[1].round_id, 0)

        # Last question of the last round finishes the game
        await game_flow.close_submissions(storage, game_id)
        result = await game_flow.finalize_and_advance(storage, game_id)
        assert (result.success, result.state) == (True, "finished")

        assert (await storage.get_team(alpha.team_id)).total_score == 1


class TestStartRound:
    async def test_defaults_to_first_round(self, storage, seed_game):
        seeded = await seed_game(two_rounds())
        await game_flow.start_round(storage, seeded.game.game_id)

        game = await game_of(storage, seeded)
        assert (game.current_round_id, game.current_question_index) == (seeded.rounds[0].round_id, 0)

    async def test_can_start_a_chosen_round(self, storage, seed_game):
        seeded = await seed_game(two_rounds())
        await game_flow.start_round(storage, seeded.game.game_id, seeded.rounds[1].round_id)

        assert (await game_of(storage, seeded)).current_round_id == seeded.rounds[1].round_id

    async def test_only_from_lobby(self, storage, seed_game):
        seeded = await seed_game()
        await game_flow.start_round(storage, seeded.game.game_id)

        result = await game_flow.start_round(storage, seeded.game.game_id)

        assert (result.success, result.reason, result.state) == (False, "not_lobby", "in_round")

    async def test_needs_a_round(self, storage, seed_game):
        seeded = await seed_game([])
        result = await game_flow.start_round(storage, seeded.game.game_id)
        assert (result.success, result.reason) == (False, "no_rounds")
        assert (await game_of(storage, seeded)).state == "lobby"

    async def test_round_from_another_game(self, storage, seed_game):
        seeded = await seed_game()
        other = await seed_game()

        with pytest.raises(RoundNotFoundError):
            await game_flow.start_round(storage, seeded.game.game_id, other.rounds[0].round_id)

    async def test_unknown_game(self, storage):
        with pytest.raises(GameNotFoundError):
            await game_flow.start_round(storage, "game_missing")


class TestCloseSubmissions:
    async def test_needs_in_round(self, storage, seed_game):
        seeded = await seed_game()
        result = await game_flow.close_submissions(storage, seeded.game.game_id)
        assert (result.success, result.reason) == (False, "not_in_round")

    async def test_needs_a_question(self, storage, seed_game):
        seeded = await seed_game([[]])
        await game_flow.start_round(storage, seeded.game.game_id)

        result = await game_flow.close_submissions(storage, seeded.game.game_id)

        assert (result.success, result.reason) == (False, "no_question")

    async def test_refuses_finalized_question(self, storage, seed_game):
        seeded = await seed_game()
        await game_flow.start_round(storage, seeded.game.game_id)
        await scoring.finalize_question(storage, seeded.questions[0][0].question_id)

        result = await game_flow.close_submissions(storage, seeded.game.game_id)

        assert (result.success, result.reason, result.state) == (False, "already_finalized", "in_round")


class TestFinalizeAndAdvance:
    async def test_needs_grading(self, storage, seed_game):
        seeded = await seed_game()
        await game_flow.start_round(storage, seeded.game.game_id)

        result = await game_flow.finalize_and_advance(storage, seeded.game.game_id)

        assert (result.success, result.reason) == (False, "not_grading")

    async def test_already_finalized_question_is_left_alone(self, storage, seed_game):
        seeded = await seed_game()
        game_id = seeded.game.game_id
        await game_flow.start_round(storage, game_id)
        await game_flow.close_submissions(storage, game_id)
        await scoring.finalize_question(storage, seeded.questions[0][0].question_id)

        result = await game_flow.finalize_and_advance(storage, game_id)

        assert (result.success, result.reason, result.state) == (False, "already_finalized", "grading")
        assert (await game_of(storage, seeded)).current_question_index == 0

    async def test_concurrent_calls_count_scores_once(self, storage, seed_game):
        seeded = await seed_game([[text_question("Paris", points=2), text_question("Rome")]])
        game_id = seeded.game.game_id
        alpha = seeded.teams[0]
        await game_flow.start_round(storage, game_id)
        await submit_answer(storage, seeded.questions[0][0].question_id, alpha.team_id, raw_answer="Paris")
        await game_flow.close_submissions(storage, game_id)
        await scoring.auto_grade(storage, seeded.questions[0][0].question_id)

        results = await asyncio.gather(
            game_flow.finalize_and_advance(storage, game_id),
            game_flow.finalize_and_advance(storage, game_id),
        )

        assert sorted(r.success for r in results) == [False, True]
        assert (await storage.get_team(alpha.team_id)).total_score == 2
        assert (await game_of(storage, seeded)).current_question_index == 1

    async def test_lost_race_reports_conflict(self, storage, seed_game, monkeypatch):
        seeded = await seed_game()
        game_id = seeded.game.game_id
        await game_flow.start_round(storage, game_id)
        monkeypatch.setattr(storage, "transition_game", AsyncMock(return_value=None))

        result = await game_flow.close_submissions(storage, game_id)

        assert (result.success, result.reason, result.state) == (False, "conflict", "in_round")


class TestAdvanceQuestion:
    async def test_moves_to_next_question(self, storage, seed_game):
        seeded = await seed_game()
        await game_flow.start_round(storage, seeded.game.game_id)

        result = await game_flow.advance_question(storage, seeded.game.game_id)

        assert result.success is True
        assert (await game_of(storage, seeded)).current_question_index == 1

    async def test_end_of_round(self, storage, seed_game):
        seeded = await seed_game()
        await game_flow.start_round(storage, seeded.game.game_id)
        await game_flow.advance_question(storage, seeded.game.game_id)

        result = await game_flow.advance_question(storage, seeded.game.game_id)

        assert (result.success, result.reason) == (False, "end_of_round")

    async def test_no_round(self, storage, seed_game):
        seeded = await seed_game()
        result = await game_flow.advance_question(storage, seeded.game.game_id)
        assert result.reason == "no_round"

    async def test_moves_past_question_finalized_during_grading(self, storage, seed_game):
        seeded = await seed_game()
        game_id = seeded.game.game_id
        await game_flow.start_round(storage, game_id)
        await game_flow.close_submissions(storage, game_id)
        await scoring.finalize_question(storage, seeded.questions[0][0].question_id)
        stuck = await game_flow.finalize_and_advance(storage, game_id)
        assert stuck.reason == "already_finalized"

        result = await game_flow.advance_question(storage, game_id)

        assert (result.success, result.state) == (True, "in_round")
        assert (await game_of(storage, seeded)).current_question_index == 1

    async def test_not_between_rounds(self, storage, seed_game):
        seeded = await seed_game(two_rounds())
        game_id = seeded.game.game_id
        await game_flow.start_round(storage, game_id)
        await game_flow.go_to_between_rounds(storage, game_id)

        result = await game_flow.advance_question(storage, game_id)

        assert (result.success, result.reason) == (False, "not_in_round")
        assert (await game_of(storage, seeded)).state == "between_rounds"


class TestAdvanceRound:
    async def test_moves_to_next_round(self, storage, seed_game):
        seeded = await seed_game(two_rounds())
        await game_flow.start_round(storage, seeded.game.game_id)

        result = await game_flow.advance_round(storage, seeded.game.game_id)

        assert (result.success, result.state) == (True, "in_round")
        game = await game_of(storage, seeded)
        assert (game.current_round_id, game.current_question_index) == (seeded.rounds[1].round_id, 0)

    async def test_finishes_after_last_round(self, storage, seed_game):
        seeded = await seed_game()
        await game_flow.start_round(storage, seeded.game.game_id)

        result = await game_flow.advance_round(storage, seeded.game.game_id)

        assert (result.success, result.reason, result.state) == (False, "end_of_game", "finished")
        again = await game_flow.advance_round(storage, seeded.game.game_id)
        assert again.reason == "game_finished"

    async def test_no_round(self, storage, seed_game):
        seeded = await seed_game()
        result = await game_flow.advance_round(storage, seeded.game.game_id)
        assert result.reason == "no_round"


class TestBetweenRounds:
    async def test_goes_between_rounds_when_more_remain(self, storage, seed_game):
        seeded = await seed_game(two_rounds())
        await game_flow.start_round(storage, seeded.game.game_id)

        result = await game_flow.go_to_between_rounds(storage, seeded.game.game_id)

        assert (result.success, result.state) == (True, "between_rounds")

    async def test_finishes_from_last_round(self, storage, seed_game):
        seeded = await seed_game()
        await game_flow.start_round(storage, seeded.game.game_id)
        await game_flow.close_submissions(storage, seeded.game.game_id)

        result = await game_flow.go_to_between_rounds(storage, seeded.game.game_id)

        assert (result.success, result.state) == (True, "finished")

    async def test_not_from_lobby(self, storage, seed_game):
        seeded = await seed_game()
        result = await game_flow.go_to_between_rounds(storage, seeded.game.game_id)
        assert result.reason == "not_in_round"

    async def test_start_next_round_needs_between_rounds(self, storage, seed_game):
        seeded = await seed_game(two_rounds())
        await game_flow.start_round(storage, seeded.game.game_id)

        result = await game_flow.start_next_round(storage, seeded.game.game_id)

        assert (result.success, result.reason) == (False, "not_between_rounds")

    async def test_start_next_round_finishes_when_none_left(self, storage, seed_game):
        seeded = await seed_game(two_rounds())
        game_id = seeded.game.game_id
        await game_flow.start_round(storage, game_id)
        await game_flow.go_to_between_rounds(storage, game_id)
        await game_flow.start_next_round(storage, game_id)
        # Force a break after the last round
        await storage.transition_game(game_id, "in_round", state="between_rounds")

        result = await game_flow.start_next_round(storage, game_id)

        assert (result.success, result.reason, result.state) == (False, "no_more_rounds", "finished")


class TestEndAndReset:
    async def test_end_game_once(self, storage, seed_game):
        seeded = await seed_game()
        assert (await game_flow.end_game(storage, seeded.game.game_id)).state == "finished"

        result = await game_flow.end_game(storage, seeded.game.game_id)

        assert (result.success, result.reason) == (False, "already_finished")

    async def test_reset_keeps_teams_with_zero_scores(self, storage, seed_game):
        seeded = await seed_game()
        game_id = seeded.game.game_id
        question = seeded.questions[0][0]
        alpha = seeded.teams[0]
        await game_flow.start_round(storage, game_id)
        await submit_answer(storage, question.question_id, alpha.team_id, raw_answer="Paris")
        await game_flow.close_submissions(storage, game_id)
        await scoring.auto_grade(storage, question.question_id)
        await game_flow.finalize_and_advance(storage, game_id)

        result = await game_flow.reset_game(storage, game_id, preserve_teams=True)

        assert (result.success, result.state) == (True, "lobby")
        game = await storage.get_game(game_id)
        assert (game.current_round_id, game.current_question_index) == (None, None)
        assert [t.total_score for t in await storage.get_teams(game_id)] == [0, 0]
        assert await storage.get_question_answers(question.question_id) == []
        assert (await storage.get_question(question.question_id)).is_finalized is False

    async def test_full_reset_removes_teams(self, storage, seed_game):
        seeded = await seed_game()
        await game_flow.start_round(storage, seeded.game.game_id)

        await game_flow.reset_game(storage, seeded.game.game_id, preserve_teams=False)

        assert await storage.get_teams(seeded.game.game_id) == []


class TestReadViews:
    async def test_current_question(self, storage, seed_game):
        seeded = await seed_game()
        assert await game_flow.get_current_question(storage, seeded.game.game_id) is None

        await game_flow.start_round(storage, seeded.game.game_id)
        await game_flow.advance_question(storage, seeded.game.game_id)
        current = await game_flow.get_current_question(storage, seeded.game.game_id)

        assert current.question.question_id == seeded.questions[0][1].question_id
        assert (current.round_title, current.round_number) == ("Round 1", 1)
        assert (current.question_number, current.total_questions) == (2, 2)

    async def test_game_state(self, storage, seed_game):
        seeded = await seed_game(two_rounds())
        await game_flow.start_round(storage, seeded.game.game_id)

        state = await game_flow.get_game_state(storage, seeded.game.game_id)

        assert state.game.state == "in_round"
        assert state.current_round.round_id == seeded.rounds[0].round_id
        assert state.current_question.question_id == seeded.questions[0][0].question_id
        assert [r.round_number for r in state.rounds] == [1, 2]
