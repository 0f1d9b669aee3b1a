"""
Game endpoints: creation, lookup, listing and lobby settings.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_storage
from ..errors import GameNotFoundError
from ..models import (
    CreateGameRequest,
    CreateGameResponse,
    ErrorResponse,
    Game,
    GameStateView,
    GameSummary,
    LobbyLockResponse,
    UpdateGameRequest,
    UpdateMaxTeamsRequest,
)
from ..services import games as game_service
from ..services.game_flow import get_game_state
from ..socket_manager import broadcast_game_state
from ..storage import Storage

router = APIRouter(prefix="/games", tags=["games"])


@router.post(
    "",
    response_model=CreateGameResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_game(
    request: CreateGameRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> CreateGameResponse:
    """Create a new game in the lobby."""
    game = await game_service.create_game(
        storage,
        title=request.title,
        description=request.description,
        max_teams=request.max_teams,
    )
    return CreateGameResponse(game_id=game.game_id, join_code=game.join_code)


@router.get("", response_model=list[GameSummary])
async def list_games(
    storage: Annotated[Storage, Depends(get_storage)],
    include_archived: Annotated[bool, Query(alias="includeArchived")] = False,
) -> list[GameSummary]:
    return await game_service.list_games(storage, include_archived=include_archived)


@router.get(
    "/by-code/{join_code}",
    response_model=Game,
    responses={404: {"model": ErrorResponse}},
)
async def get_game_by_join_code(
    join_code: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Game:
    """Find the game a team is trying to join."""
    game = await game_service.get_game_by_join_code(storage, join_code)
    if game is None:
        raise GameNotFoundError(f"Game '{join_code.strip().upper()}' not found")
    return game


@router.get("/{game_id}", response_model=Game, responses={404: {"model": ErrorResponse}})
async def get_game(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Game:
    return await game_service.get_game(storage, game_id)


@router.get(
    "/{game_id}/state",
    response_model=GameStateView,
    responses={404: {"model": ErrorResponse}},
)
async def get_state(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> GameStateView:
    """Same payload that is pushed to clients over Socket.IO."""
    return await get_game_state(storage, game_id)


@router.patch(
    "/{game_id}",
    response_model=Game,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_game(
    game_id: str,
    request: UpdateGameRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Game:
    game = await game_service.update_game_meta(
        storage, game_id, title=request.title, description=request.description
    )
    await broadcast_game_state(game_id)
    return game


@router.post("/{game_id}/archive", response_model=Game, responses={404: {"model": ErrorResponse}})
async def archive_game(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Game:
    return await game_service.archive_game(storage, game_id)


@router.post("/{game_id}/restore", response_model=Game, responses={404: {"model": ErrorResponse}})
async def restore_game(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Game:
    return await game_service.restore_game(storage, game_id)


@router.delete(
    "/{game_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_game(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> None:
    await game_service.delete_game(storage, game_id)


@router.post(
    "/{game_id}/duplicate",
    response_model=CreateGameResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def duplicate_game(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> CreateGameResponse:
    """Copy a game's rounds and questions into a fresh lobby game."""
    game = await game_service.duplicate_game(storage, game_id)
    return CreateGameResponse(game_id=game.game_id, join_code=game.join_code)


@router.post(
    "/{game_id}/lobby-lock",
    response_model=LobbyLockResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def toggle_lobby_lock(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> LobbyLockResponse:
    locked = await game_service.toggle_lobby_lock(storage, game_id)
    await broadcast_game_state(game_id)
    return LobbyLockResponse(is_lobby_locked=locked)


@router.put(
    "/{game_id}/max-teams",
    response_model=Game,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_max_teams(
    game_id: str,
    request: UpdateMaxTeamsRequest,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Game:
    game = await game_service.update_max_teams(storage, game_id, request.max_teams)
    await broadcast_game_state(game_id)
    return game
