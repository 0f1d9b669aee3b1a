import json

import pytest

from conftest import text_question
from trivia_live.errors import InvalidRequestError, QuestionFinalizedError, QuestionNotFoundError
from trivia_live.services import answers, game_flow, scoring


class TestSubmitAnswer:
    async def test_normalizes_on_store(self, storage, seed_game):
        seeded = await seed_game()
        answer = await answers.submit_answer(
            storage, seeded.questions[0][0].question_id, seeded.teams[0].team_id, raw_answer="  PARIS!! "
        )

        assert answer.raw_answer == "  PARIS!! "
        assert answer.normalized_answer == "paris"
        assert answer.needs_review is True
        assert answer.auto_score is None

    async def test_resubmission_overwrites_single_row(self, storage, seed_game):
        seeded = await seed_game()
        question_id = seeded.questions[0][0].question_id
        team_id = seeded.teams[0].team_id

        first = await answers.submit_answer(storage, question_id, team_id, raw_answer="London")
        second = await answers.submit_answer(storage, question_id, team_id, raw_answer="Paris")

        stored = await storage.get_question_answers(question_id)
        assert len(stored) == 1
        assert second.answer_id == first.answer_id
        assert stored[0].raw_answer == "Paris"

    async def test_field_map_is_kept_as_json_raw_answer(self, storage, seed_game):
        seeded = await seed_game()
        fields = {"composer": "Bach", "piece": "Air!"}

        answer = await answers.submit_answer(
            storage, seeded.questions[0][0].question_id, seeded.teams[0].team_id, answers=fields
        )

        assert json.loads(answer.raw_answer) == fields
        assert answer.normalized_answers == {"composer": "bach", "piece": "air"}

    async def test_team_from_another_game(self, storage, seed_game):
        seeded = await seed_game()
        other = await seed_game(team_names=("Outsiders",))

        with pytest.raises(InvalidRequestError):
            await answers.submit_answer(
                storage, seeded.questions[0][0].question_id, other.teams[0].team_id, raw_answer="Paris"
            )

    async def test_closed_after_finalize(self, storage, seed_game):
        seeded = await seed_game()
        question_id = seeded.questions[0][0].question_id
        await scoring.finalize_question(storage, question_id)

        with pytest.raises(QuestionFinalizedError):
            await answers.submit_answer(storage, question_id, seeded.teams[0].team_id, raw_answer="Paris")

    async def test_unknown_question(self, storage, seed_game):
        seeded = await seed_game()
        with pytest.raises(QuestionNotFoundError):
            await answers.submit_answer(storage, "question_missing", seeded.teams[0].team_id, raw_answer="x")


class TestSubmissionStatus:
    async def test_team_status(self, storage, seed_game):
        seeded = await seed_game()
        question_id = seeded.questions[0][0].question_id
        team_id = seeded.teams[0].team_id

        assert (await answers.get_submission_status(storage, question_id, team_id)).has_submitted is False

        await answers.submit_answer(storage, question_id, team_id, raw_answer="Paris")
        status = await answers.get_submission_status(storage, question_id, team_id)

        assert (status.has_submitted, status.answer) == (True, "Paris")
        assert status.submitted_at is not None

    async def test_game_status_follows_current_question(self, storage, seed_game):
        seeded = await seed_game([[text_question("Paris"), text_question("Rome")]])
        game_id = seeded.game.game_id
        alpha = seeded.teams[0]

        before = await answers.get_game_submission_status(storage, game_id)
        assert (before.submitted_count, before.total_teams) == (0, 2)

        await game_flow.start_round(storage, game_id)
        await answers.submit_answer(storage, seeded.questions[0][0].question_id, alpha.team_id, raw_answer="Paris")
        status = await answers.get_game_submission_status(storage, game_id)

        assert (status.submitted_count, status.total_teams) == (1, 2)
        assert [(t.team_name, t.has_submitted) for t in status.teams] == [("Alpha", True), ("Beta", False)]

        await game_flow.advance_question(storage, game_id)
        assert (await answers.get_game_submission_status(storage, game_id)).submitted_count == 0


async def test_answers_for_question_carry_team_names(storage, seed_game):
    seeded = await seed_game()
    question_id = seeded.questions[0][0].question_id
    for team in seeded.teams:
        await answers.submit_answer(storage, question_id, team.team_id, raw_answer="Paris")

    listed = await answers.get_answers_for_question(storage, question_id)

    assert sorted(a.team_name for a in listed) == ["Alpha", "Beta"]
