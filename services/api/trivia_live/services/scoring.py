"""
Score lifecycle for a question: auto-grade, human review, finalization,
plus the standings derived from committed totals.
"""
from typing import Optional

import structlog

from ..errors import QuestionAlreadyFinalizedError, QuestionFinalizedError
from ..models import (
    Answer,
    AnswerWithTeam,
    FinalizeResult,
    GradeResult,
    RoundInfo,
    RoundSummary,
    StandingEntry,
    TeamRoundScore,
)
from ..storage import Storage
from .answers import get_answers_for_question
from .grading import grade_answer
from .lookups import require_answer, require_game, require_question

logger = structlog.get_logger()


def effective_score(answer: Answer) -> int:
    """The score an answer counts for: final, else auto, else nothing."""
    if answer.final_score is not None:
        return answer.final_score
    if answer.auto_score is not None:
        return answer.auto_score
    return 0


async def auto_grade(storage: Storage, question_id: str) -> GradeResult:
    """
    Grade every answer to a question.

    Re-running overwrites earlier auto grades, including a final score set
    by a reviewer. Team totals are never touched here.
    """
    question = await require_question(storage, question_id)
    if question.is_finalized:
        raise QuestionFinalizedError("Cannot re-grade a finalized question")

    answers = await storage.get_question_answers(question_id)
    grades = {answer.answer_id: grade_answer(question, answer) for answer in answers}
    await storage.update_answer_grades(grades)

    flagged = sum(1 for grade in grades.values() if grade.needs_review)
    logger.info("question auto-graded", question_id=question_id, answers=len(grades), needs_review=flagged)
    return GradeResult(graded_count=len(grades))


async def set_final_score(storage: Storage, answer_id: str, score: int) -> Answer:
    """
    Host override; clears the review flag. Not bounded by question points.

    Still allowed once the question is finalized, but the committed team
    total is not adjusted, so the two can disagree afterwards.
    """
    answer = await require_answer(storage, answer_id)
    question = await require_question(storage, answer.question_id)
    if question.is_finalized:
        logger.warning(
            "final score set after finalization",
            answer_id=answer_id,
            question_id=question.question_id,
            score=score,
        )
    return await storage.set_final_score(answer_id, score)


async def get_needs_review(storage: Storage, question_id: str) -> list[AnswerWithTeam]:
    answers = await get_answers_for_question(storage, question_id)
    return [answer for answer in answers if answer.needs_review]


async def finalize_question(storage: Storage, question_id: str) -> FinalizeResult:
    """Commit a question's scores into team totals. Allowed once per question."""
    await require_question(storage, question_id)

    finalized = await storage.finalize_question(question_id)
    if finalized is None:
        raise QuestionAlreadyFinalizedError()

    logger.info("question finalized", question_id=question_id, answers=len(finalized))
    return FinalizeResult(finalized_count=len(finalized))


async def get_standings(storage: Storage, game_id: str) -> list[StandingEntry]:
    """Teams by total score, highest first. Ties keep join order."""
    teams = await storage.get_teams(game_id)
    ranked = sorted(teams, key=lambda team: -team.total_score)

    return [
        StandingEntry(
            rank=position,
            team_id=team.team_id,
            team_name=team.name,
            total_score=team.total_score,
        )
        for position, team in enumerate(ranked, start=1)
    ]


async def get_completed_round_summary(storage: Storage, game_id: str) -> Optional[RoundSummary]:
    """Per-team scores for the game's current round, in standings order."""
    game = await require_game(storage, game_id)
    if game.current_round_id is None:
        return None

    round_obj = await storage.get_round(game.current_round_id)
    if round_obj is None:
        return None

    round_scores: dict[str, int] = {}
    for question in await storage.get_questions(round_obj.round_id):
        for answer in await storage.get_question_answers(question.question_id):
            round_scores[answer.team_id] = round_scores.get(answer.team_id, 0) + effective_score(answer)

    teams = [
        TeamRoundScore(
            team_id=entry.team_id,
            team_name=entry.team_name,
            round_score=round_scores.get(entry.team_id, 0),
            total_score=entry.total_score,
        )
        for entry in await get_standings(storage, game_id)
    ]

    top_scorer = None
    for team in teams:
        if top_scorer is None or team.round_score > top_scorer.round_score:
            top_scorer = team

    return RoundSummary(
        current_round=RoundInfo(
            round_id=round_obj.round_id,
            title=round_obj.title,
            round_number=round_obj.round_number,
        ),
        teams=teams,
        top_scorer_this_round=top_scorer,
    )
