"""
Host controls for live play, plus the standings views.

Transitions answer 200 with ``success: false`` and a ``reason`` when the
game cannot move; clients branch on the reason.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends

from ..dependencies import get_storage
from ..models import (
    CurrentQuestion,
    ErrorResponse,
    ResetGameRequest,
    RoundSummary,
    StandingEntry,
    StartRoundRequest,
    TransitionResult,
)
from ..services import game_flow, scoring
from ..services.lookups import require_game
from ..socket_manager import broadcast_game_state
from ..storage import Storage

router = APIRouter(prefix="/games/{game_id}", tags=["host"])


async def _broadcast_if_moved(game_id: str, result: TransitionResult) -> TransitionResult:
    # Auto-finish reports success=False but still changes the game
    if result.success or result.reason in ("end_of_game", "no_more_rounds"):
        await broadcast_game_state(game_id)
    return result


# ============================================================================
# Transitions
# ============================================================================


@router.post(
    "/start-round",
    response_model=TransitionResult,
    responses={404: {"model": ErrorResponse}},
)
async def start_round(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
    request: Annotated[Optional[StartRoundRequest], Body()] = None,
) -> TransitionResult:
    """Start the given round, or the first one."""
    round_id = request.round_id if request else None
    result = await game_flow.start_round(storage, game_id, round_id)
    return await _broadcast_if_moved(game_id, result)


@router.post("/close-submissions", response_model=TransitionResult, responses={404: {"model": ErrorResponse}})
async def close_submissions(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> TransitionResult:
    result = await game_flow.close_submissions(storage, game_id)
    return await _broadcast_if_moved(game_id, result)


@router.post("/finalize-and-advance", response_model=TransitionResult, responses={404: {"model": ErrorResponse}})
async def finalize_and_advance(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> TransitionResult:
    """Commit the current question's scores and move to whatever comes next."""
    result = await game_flow.finalize_and_advance(storage, game_id)
    return await _broadcast_if_moved(game_id, result)


@router.post("/advance-question", response_model=TransitionResult, responses={404: {"model": ErrorResponse}})
async def advance_question(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> TransitionResult:
    result = await game_flow.advance_question(storage, game_id)
    return await _broadcast_if_moved(game_id, result)


@router.post("/advance-round", response_model=TransitionResult, responses={404: {"model": ErrorResponse}})
async def advance_round(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> TransitionResult:
    result = await game_flow.advance_round(storage, game_id)
    return await _broadcast_if_moved(game_id, result)


@router.post("/between-rounds", response_model=TransitionResult, responses={404: {"model": ErrorResponse}})
async def go_to_between_rounds(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> TransitionResult:
    result = await game_flow.go_to_between_rounds(storage, game_id)
    return await _broadcast_if_moved(game_id, result)


@router.post("/next-round", response_model=TransitionResult, responses={404: {"model": ErrorResponse}})
async def start_next_round(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> TransitionResult:
    result = await game_flow.start_next_round(storage, game_id)
    return await _broadcast_if_moved(game_id, result)


@router.post("/end", response_model=TransitionResult, responses={404: {"model": ErrorResponse}})
async def end_game(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> TransitionResult:
    result = await game_flow.end_game(storage, game_id)
    return await _broadcast_if_moved(game_id, result)


@router.post("/reset", response_model=TransitionResult, responses={404: {"model": ErrorResponse}})
async def reset_game(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
    request: Annotated[Optional[ResetGameRequest], Body()] = None,
) -> TransitionResult:
    """Back to the lobby. Teams are kept with zeroed scores unless told otherwise."""
    preserve_teams = request.preserve_teams if request else True
    result = await game_flow.reset_game(storage, game_id, preserve_teams=preserve_teams)
    return await _broadcast_if_moved(game_id, result)


# ============================================================================
# Views
# ============================================================================


@router.get(
    "/current-question",
    response_model=Optional[CurrentQuestion],
    responses={404: {"model": ErrorResponse}},
)
async def get_current_question(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Optional[CurrentQuestion]:
    return await game_flow.get_current_question(storage, game_id)


@router.get(
    "/standings",
    response_model=list[StandingEntry],
    responses={404: {"model": ErrorResponse}},
)
async def get_standings(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> list[StandingEntry]:
    await require_game(storage, game_id)
    return await scoring.get_standings(storage, game_id)


@router.get(
    "/round-summary",
    response_model=Optional[RoundSummary],
    responses={404: {"model": ErrorResponse}},
)
async def get_round_summary(
    game_id: str,
    storage: Annotated[Storage, Depends(get_storage)],
) -> Optional[RoundSummary]:
    """Scores for the round that just ended, for the between-rounds screen."""
    return await scoring.get_completed_round_summary(storage, game_id)
