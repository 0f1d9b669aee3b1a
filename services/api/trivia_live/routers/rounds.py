"""
Round authoring endpoints.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, status

from ..dependencies import get_storage
from ..models import (
    CreateRoundRequest,
    ErrorResponse,
    ReorderRoundsRequest,
    Round,
    UpdateRoundRequest,
)
from ..services import rounds as round_service
from ..services.lookups import require_game, require_round
from ..storage import Storage

router = APIRouter(tags=["rounds"])


@router.post(
    "/games/{game_id}/rounds",
    response_model=Round,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_round(
    game_id: str,
    request: CreateRoundRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Round:
    """Add a round after the game's existing rounds."""
    return await round_service.create_round(storage, game_id, request.title, request.type)


@router.get(
    "/games/{game_id}/rounds",
    response_model=list[Round],
    responses={404: {"model": ErrorResponse}},
)
async def list_rounds(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[Round]:
    await require_game(storage, game_id)
    return await round_service.get_rounds(storage, game_id)


@router.put(
    "/games/{game_id}/rounds/order",
    response_model=list[Round],
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reorder_rounds(
    game_id: str,
    request: ReorderRoundsRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[Round]:
    return await round_service.reorder_rounds(storage, game_id, request.round_ids)


@router.get("/rounds/{round_id}", response_model=Round, responses={404: {"model": ErrorResponse}})
async def get_round(
    round_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Round:
    return await require_round(storage, round_id)


@router.patch(
    "/rounds/{round_id}",
    response_model=Round,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_round(
    round_id: str,
    request: UpdateRoundRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Round:
    return await round_service.update_round(
        storage, round_id, title=request.title, round_type=request.type
    )


@router.delete(
    "/rounds/{round_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_round(
    round_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> None:
    await round_service.delete_round(storage, round_id)
