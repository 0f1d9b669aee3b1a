"""
Live game progression.

The host drives a game through lobby -> in_round -> grading ->
between_rounds -> finished. Every move is a compare-and-set on the game's
state, so two hosts pressing buttons at once cannot both win: the loser
gets ``reason="conflict"`` and the game is left as the winner set it.

Structural dead ends (no more questions, no more rounds, wrong state) come
back as ``TransitionResult(success=False, reason=...)`` for the host UI to
branch on. Only missing entities raise.
"""
from typing import Any, Optional

import structlog

from ..errors import RoundNotFoundError
from ..models import (
    CurrentQuestion,
    Game,
    GameState,
    GameStateView,
    Round,
    TransitionReason,
    TransitionResult,
)
from ..storage import Storage
from .lookups import current_question, require_game

logger = structlog.get_logger()

# Allowed state edges, apart from reset_game which returns any state to lobby
TRANSITIONS: dict[GameState, frozenset[GameState]] = {
    "lobby": frozenset({"in_round", "finished"}),
    "in_round": frozenset({"grading", "in_round", "between_rounds", "finished"}),
    "grading": frozenset({"in_round", "between_rounds", "finished"}),
    "between_rounds": frozenset({"in_round", "finished"}),
    "finished": frozenset(),
}


def _failed(game: Game, reason: TransitionReason, **extra: Any) -> TransitionResult:
    return TransitionResult(success=False, reason=reason, state=game.state, **extra)


async def _move(storage: Storage, game: Game, target: GameState, **changes: Any) -> Optional[Game]:
    """
    Move ``game`` to ``target`` if it is still in the state it was read in.

    Returns the updated game, or None when a concurrent transition got
    there first.
    """
    if target not in TRANSITIONS[game.state]:
        raise ValueError(f"Illegal game transition {game.state} -> {target}")

    updated = await storage.transition_game(game.game_id, game.state, state=target, **changes)
    if updated is None:
        logger.warning("transition lost race", game_id=game.game_id, from_state=game.state, to_state=target)
        return None

    logger.info("game transitioned", game_id=game.game_id, from_state=game.state, to_state=target)
    return updated


async def _conflict(storage: Storage, game_id: str, **extra: Any) -> TransitionResult:
    latest = await require_game(storage, game_id)
    return _failed(latest, "conflict", **extra)


def _next_round(rounds: list[Round], current_round_id: str) -> Optional[Round]:
    """The round after the current one in play order, if any."""
    current = next((r for r in rounds if r.round_id == current_round_id), None)
    if current is None:
        return None
    return next((r for r in rounds if r.round_number > current.round_number), None)


async def start_round(
    storage: Storage, game_id: str, round_id: Optional[str] = None
) -> TransitionResult:
    """Open the first question of a round (the first round by default)."""
    game = await require_game(storage, game_id)
    if game.state != "lobby":
        return _failed(game, "not_lobby")

    if round_id is not None:
        round_obj = await storage.get_round(round_id)
        if round_obj is None or round_obj.game_id != game_id:
            raise RoundNotFoundError()
    else:
        rounds = await storage.get_rounds(game_id)
        if not rounds:
            return _failed(game, "no_rounds")
        round_obj = rounds[0]

    updated = await _move(
        storage, game, "in_round",
        current_round_id=round_obj.round_id,
        current_question_index=0,
    )
    if updated is None:
        return await _conflict(storage, game_id)
    return TransitionResult(success=True, state=updated.state, next_round=round_obj)


async def close_submissions(storage: Storage, game_id: str) -> TransitionResult:
    """Stop taking answers for the current question so it can be graded."""
    game = await require_game(storage, game_id)
    if game.state != "in_round":
        return _failed(game, "not_in_round")

    question = await current_question(storage, game)
    if question is None:
        return _failed(game, "no_question")
    if question.is_finalized:
        return _failed(game, "already_finalized")

    updated = await _move(storage, game, "grading")
    if updated is None:
        return await _conflict(storage, game_id)
    return TransitionResult(success=True, state=updated.state)


async def finalize_and_advance(storage: Storage, game_id: str) -> TransitionResult:
    """
    Commit the current question's scores, then move on.

    The next question opens if the round has one; otherwise the game goes
    between rounds, or finishes after the last round.
    """
    game = await require_game(storage, game_id)
    if game.state != "grading":
        return _failed(game, "not_grading")

    question = await current_question(storage, game)
    if question is None:
        return _failed(game, "no_question")
    if question.is_finalized:
        return _failed(game, "already_finalized")

    finalized = await storage.finalize_question(question.question_id)
    if finalized is None:
        return _failed(game, "already_finalized")
    finalized_count = len(finalized)
    logger.info("question finalized", question_id=question.question_id, answers=finalized_count)

    questions = await storage.get_questions(game.current_round_id)
    if game.current_question_index < len(questions) - 1:
        updated = await _move(
            storage, game, "in_round",
            current_question_index=game.current_question_index + 1,
        )
        next_round = None
    else:
        next_round = _next_round(await storage.get_rounds(game_id), game.current_round_id)
        target = "between_rounds" if next_round is not None else "finished"
        updated = await _move(storage, game, target)

    if updated is None:
        return await _conflict(storage, game_id, finalized_count=finalized_count)
    return TransitionResult(
        success=True,
        state=updated.state,
        next_round=next_round,
        finalized_count=finalized_count,
    )


async def advance_question(storage: Storage, game_id: str) -> TransitionResult:
    """
    Open the next question of the round.

    Works from grading too, so a question finalized on its own can still be
    moved past. Nothing is committed here.
    """
    game = await require_game(storage, game_id)
    if game.current_round_id is None:
        return _failed(game, "no_round")

    questions = await storage.get_questions(game.current_round_id)
    next_index = (game.current_question_index or 0) + 1
    if next_index >= len(questions):
        return _failed(game, "end_of_round")

    if game.state not in ("in_round", "grading"):
        return _failed(game, "not_in_round")

    updated = await _move(storage, game, "in_round", current_question_index=next_index)
    if updated is None:
        return await _conflict(storage, game_id)
    return TransitionResult(success=True, state=updated.state)


async def advance_round(storage: Storage, game_id: str) -> TransitionResult:
    """Jump to the first question of the next round, finishing the game if none is left."""
    game = await require_game(storage, game_id)
    if game.current_round_id is None:
        return _failed(game, "no_round")
    if game.state == "finished":
        return _failed(game, "game_finished")

    next_round = _next_round(await storage.get_rounds(game_id), game.current_round_id)
    if next_round is None:
        updated = await _move(storage, game, "finished")
        if updated is None:
            return await _conflict(storage, game_id)
        return _failed(updated, "end_of_game")

    updated = await _move(
        storage, game, "in_round",
        current_round_id=next_round.round_id,
        current_question_index=0,
    )
    if updated is None:
        return await _conflict(storage, game_id)
    return TransitionResult(success=True, state=updated.state, next_round=next_round)


async def go_to_between_rounds(storage: Storage, game_id: str) -> TransitionResult:
    """End the current round early; finishes the game if it was the last round."""
    game = await require_game(storage, game_id)
    if game.state not in ("in_round", "grading"):
        return _failed(game, "not_in_round")
    if game.current_round_id is None:
        return _failed(game, "no_round")

    next_round = _next_round(await storage.get_rounds(game_id), game.current_round_id)
    target = "between_rounds" if next_round is not None else "finished"

    updated = await _move(storage, game, target)
    if updated is None:
        return await _conflict(storage, game_id)
    return TransitionResult(success=True, state=updated.state, next_round=next_round)


async def start_next_round(storage: Storage, game_id: str) -> TransitionResult:
    """Leave the between-rounds break for the next round."""
    game = await require_game(storage, game_id)
    if game.state != "between_rounds":
        return _failed(game, "not_between_rounds")

    next_round = None
    if game.current_round_id is not None:
        next_round = _next_round(await storage.get_rounds(game_id), game.current_round_id)

    if next_round is None:
        updated = await _move(storage, game, "finished")
        if updated is None:
            return await _conflict(storage, game_id)
        return _failed(updated, "no_more_rounds")

    updated = await _move(
        storage, game, "in_round",
        current_round_id=next_round.round_id,
        current_question_index=0,
    )
    if updated is None:
        return await _conflict(storage, game_id)
    return TransitionResult(success=True, state=updated.state, next_round=next_round)


async def end_game(storage: Storage, game_id: str) -> TransitionResult:
    game = await require_game(storage, game_id)
    if game.state == "finished":
        return _failed(game, "already_finished")

    updated = await _move(storage, game, "finished")
    if updated is None:
        return await _conflict(storage, game_id)
    return TransitionResult(success=True, state=updated.state)


async def reset_game(storage: Storage, game_id: str, preserve_teams: bool = True) -> TransitionResult:
    """
    Send a game back to the lobby from any state.

    All answers are dropped and every question can be played again. Teams
    either stay with their totals zeroed or are removed.
    """
    await require_game(storage, game_id)
    updated = await storage.reset_game(game_id, preserve_teams)
    logger.info("game reset", game_id=game_id, preserve_teams=preserve_teams)
    return TransitionResult(success=True, state=updated.state)


async def get_current_question(storage: Storage, game_id: str) -> Optional[CurrentQuestion]:
    game = await require_game(storage, game_id)
    question = await current_question(storage, game)
    if question is None:
        return None

    round_obj = await storage.get_round(question.round_id)
    questions = await storage.get_questions(question.round_id)
    return CurrentQuestion(
        question=question,
        round_title=round_obj.title,
        round_number=round_obj.round_number,
        question_number=game.current_question_index + 1,
        total_questions=len(questions),
    )


async def get_game_state(storage: Storage, game_id: str) -> GameStateView:
    """Everything a connected client needs to render the game."""
    game = await require_game(storage, game_id)

    current_round = None
    if game.current_round_id is not None:
        current_round = await storage.get_round(game.current_round_id)

    return GameStateView(
        game=game,
        current_round=current_round,
        current_question=await current_question(storage, game),
        rounds=await storage.get_rounds(game_id),
    )
