"""
Team endpoints: joining a game and managing the lobby.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, status

from ..dependencies import get_storage
from ..models import ErrorResponse, JoinGameRequest, JoinGameResponse, Team, TeamHistoryEntry
from ..services import teams as team_service
from ..services.lookups import require_game
from ..socket_manager import broadcast_game_state
from ..storage import Storage

router = APIRouter(tags=["teams"])


@router.post(
    "/games/{game_id}/teams",
    response_model=JoinGameResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def join_game(
    game_id: str,
    request: JoinGameRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> JoinGameResponse:
    """Join a game as a new team. Only possible while the game is in the lobby."""
    team = await team_service.join_game(storage, game_id, request.name)
    await broadcast_game_state(game_id)
    return JoinGameResponse(team_id=team.team_id)


@router.get(
    "/games/{game_id}/teams",
    response_model=list[Team],
    responses={404: {"model": ErrorResponse}},
)
async def list_teams(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[Team]:
    await require_game(storage, game_id)
    return await team_service.get_teams(storage, game_id)


@router.get("/teams/{team_id}", response_model=Team, responses={404: {"model": ErrorResponse}})
async def get_team(
    team_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Team:
    return await team_service.get_team(storage, team_id)


@router.delete(
    "/teams/{team_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def remove_team(
    team_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> None:
    team = await team_service.get_team(storage, team_id)
    await team_service.remove_team(storage, team_id)
    await broadcast_game_state(team.game_id)


@router.get(
    "/teams/{team_id}/history",
    response_model=list[TeamHistoryEntry],
    responses={404: {"model": ErrorResponse}},
)
async def get_team_history(
    team_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[TeamHistoryEntry]:
    return await team_service.get_team_history(storage, team_id)
