"""
Answer endpoints: team submissions, grading, review and finalization.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_storage
from ..models import (
    Answer,
    AnswerWithTeam,
    ErrorResponse,
    FinalizeResult,
    GameSubmissionStatus,
    GradeResult,
    SetFinalScoreRequest,
    SubmissionStatus,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
)
from ..services import answers as answer_service
from ..services import scoring
from ..services.lookups import game_for_question, require_question
from ..socket_manager import broadcast_game_state
from ..storage import Storage

router = APIRouter(tags=["answers"])


# ============================================================================
# Team Endpoints
# ============================================================================


@router.post(
    "/questions/{question_id}/answers",
    response_model=SubmitAnswerResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def submit_answer(
    question_id: str,
    request: SubmitAnswerRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> SubmitAnswerResponse:
    """Submit or replace a team's answer to a question."""
    answer = await answer_service.submit_answer(
        storage,
        question_id,
        request.team_id,
        raw_answer=request.raw_answer,
        answers=request.answers,
    )
    return SubmitAnswerResponse(answer_id=answer.answer_id)


@router.get(
    "/questions/{question_id}/submission",
    response_model=SubmissionStatus,
)
async def get_submission_status(
    question_id: str,
    team_id: Annotated[str, Query(alias="teamId")],
    storage: Annotated[Storage, Depends(get_storage)],
) -> SubmissionStatus:
    return await answer_service.get_submission_status(storage, question_id, team_id)


@router.get(
    "/games/{game_id}/submissions",
    response_model=GameSubmissionStatus,
    responses={404: {"model": ErrorResponse}},
)
async def get_game_submission_status(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> GameSubmissionStatus:
    """Which teams have answered the current question."""
    return await answer_service.get_game_submission_status(storage, game_id)


# ============================================================================
# Host Endpoints
# ============================================================================


@router.get(
    "/questions/{question_id}/answers",
    response_model=list[AnswerWithTeam],
    responses={404: {"model": ErrorResponse}},
)
async def list_answers(
    question_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[AnswerWithTeam]:
    return await answer_service.get_answers_for_question(storage, question_id)


@router.get(
    "/questions/{question_id}/answers/review",
    response_model=list[AnswerWithTeam],
    responses={404: {"model": ErrorResponse}},
)
async def list_answers_needing_review(
    question_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[AnswerWithTeam]:
    return await scoring.get_needs_review(storage, question_id)


@router.post(
    "/questions/{question_id}/grade",
    response_model=GradeResult,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def auto_grade(
    question_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> GradeResult:
    """Run the auto-grader over every answer to the question."""
    return await scoring.auto_grade(storage, question_id)


@router.put(
    "/answers/{answer_id}/final-score",
    response_model=Answer,
    responses={404: {"model": ErrorResponse}},
)
async def set_final_score(
    answer_id: str,
    request: SetFinalScoreRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Answer:
    return await scoring.set_final_score(storage, answer_id, request.final_score)


@router.post(
    "/questions/{question_id}/finalize",
    response_model=FinalizeResult,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def finalize_question(
    question_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> FinalizeResult:
    """Add the question's scores to team totals. Only allowed once."""
    result = await scoring.finalize_question(storage, question_id)

    question = await require_question(storage, question_id)
    game = await game_for_question(storage, question)
    await broadcast_game_state(game.game_id)
    return result
