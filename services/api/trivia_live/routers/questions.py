"""
Question authoring endpoints.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, status

from ..dependencies import get_storage
from ..models import (
    CreateQuestionRequest,
    ErrorResponse,
    Question,
    ReorderQuestionsRequest,
    UpdateQuestionRequest,
)
from ..services import questions as question_service
from ..services.lookups import require_round
from ..storage import Storage

router = APIRouter(tags=["questions"])


@router.post(
    "/rounds/{round_id}/questions",
    response_model=Question,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_question(
    round_id: str,
    request: CreateQuestionRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Question:
    """Add a question after the round's existing questions."""
    return await question_service.create_question(
        storage, round_id, request.model_dump(by_alias=False, exclude_none=True)
    )


@router.get(
    "/rounds/{round_id}/questions",
    response_model=list[Question],
    responses={404: {"model": ErrorResponse}},
)
async def list_questions(
    round_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[Question]:
    await require_round(storage, round_id)
    return await question_service.get_questions_for_round(storage, round_id)


@router.put(
    "/rounds/{round_id}/questions/order",
    response_model=list[Question],
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reorder_questions(
    round_id: str,
    request: ReorderQuestionsRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[Question]:
    return await question_service.reorder_questions(storage, round_id, request.question_ids)


@router.get(
    "/questions/{question_id}",
    response_model=Question,
    responses={404: {"model": ErrorResponse}},
)
async def get_question(
    question_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Question:
    return await question_service.get_question(storage, question_id)


@router.patch(
    "/questions/{question_id}",
    response_model=Question,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_question(
    question_id: str,
    request: UpdateQuestionRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Question:
    return await question_service.update_question(
        storage, question_id, request.model_dump(by_alias=False, exclude_none=True)
    )


@router.delete(
    "/questions/{question_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_question(
    question_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> None:
    await question_service.delete_question(storage, question_id)


@router.post(
    "/questions/{question_id}/duplicate",
    response_model=Question,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def duplicate_question(
    question_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Question:
    return await question_service.duplicate_question(storage, question_id)
