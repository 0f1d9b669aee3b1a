"""
Answer submission and submission status.

A team holds at most one answer per question: resubmitting overwrites the
earlier answer in place until the question is finalized.
"""
import json
from typing import Optional

import structlog

from ..errors import InvalidRequestError, QuestionFinalizedError
from ..models import (
    Answer,
    AnswerWithTeam,
    GameSubmissionStatus,
    SubmissionStatus,
    TeamSubmission,
)
from ..storage import Storage
from .codes import generate_id
from .lookups import current_question, game_for_question, require_game, require_question, require_team
from .normalize import normalize_answer, normalize_answers

logger = structlog.get_logger()


async def submit_answer(
    storage: Storage,
    question_id: str,
    team_id: str,
    raw_answer: Optional[str] = None,
    answers: Optional[dict[str, str]] = None,
) -> Answer:
    """
    Store a team's answer, replacing any earlier one for the same question.

    Multi-field answers without free text keep a JSON copy of the field map
    as their raw answer.
    """
    question = await require_question(storage, question_id)
    team = await require_team(storage, team_id)
    game = await game_for_question(storage, question)

    if team.game_id != game.game_id:
        raise InvalidRequestError("Team is not playing in this question's game")
    if question.is_finalized:
        raise QuestionFinalizedError("Submissions are closed for this question")

    if raw_answer is not None:
        raw = raw_answer
    elif answers is not None:
        raw = json.dumps(answers, separators=(",", ":"))
    else:
        raw = ""

    answer = await storage.upsert_answer(
        answer_id=generate_id("answer_"),
        question_id=question_id,
        team_id=team_id,
        raw_answer=raw,
        normalized_answer=normalize_answer(raw),
        answers=answers,
        normalized_answers=normalize_answers(answers) if answers is not None else None,
    )
    logger.debug("answer submitted", team_id=team_id, question_id=question_id)
    return answer


async def get_submission_status(
    storage: Storage, question_id: str, team_id: str
) -> SubmissionStatus:
    answer = await storage.get_team_answer(question_id, team_id)
    if answer is None:
        return SubmissionStatus(has_submitted=False)
    return SubmissionStatus(
        has_submitted=True,
        answer=answer.raw_answer,
        answers=answer.answers,
        submitted_at=answer.submitted_at,
    )


async def get_game_submission_status(storage: Storage, game_id: str) -> GameSubmissionStatus:
    """Which teams have answered the game's current question."""
    game = await require_game(storage, game_id)
    teams = await storage.get_teams(game_id)
    question = await current_question(storage, game)

    submitted = set()
    if question is not None:
        submitted = {a.team_id for a in await storage.get_question_answers(question.question_id)}

    entries = [
        TeamSubmission(
            team_id=team.team_id,
            team_name=team.name,
            has_submitted=team.team_id in submitted,
        )
        for team in teams
    ]
    return GameSubmissionStatus(
        teams=entries,
        submitted_count=sum(1 for entry in entries if entry.has_submitted),
        total_teams=len(entries),
    )


async def get_answers_for_question(storage: Storage, question_id: str) -> list[AnswerWithTeam]:
    """All answers to a question with the name of the team that gave each."""
    await require_question(storage, question_id)

    results = []
    for answer in await storage.get_question_answers(question_id):
        team = await storage.get_team(answer.team_id)
        results.append(AnswerWithTeam(
            **answer.model_dump(by_alias=False),
            team_name=team.name if team else "Unknown",
        ))
    return results
