"""
Game lifecycle outside of live play: creation, lookup, listing, metadata,
archiving, deletion, duplication and lobby settings.
"""
from datetime import datetime, timezone
from typing import Optional

import structlog

from ..config import get_settings
from ..errors import GameAlreadyStartedError, InvalidRequestError, JoinCodeExhaustedError
from ..models import Game, GameSummary
from ..storage import Storage
from .codes import generate_id, generate_join_code
from .lookups import ensure_editable, require_game

logger = structlog.get_logger()

MIN_TEAMS = 1
MAX_TEAMS = 100


async def _allocate_game(storage: Storage, **fields) -> Game:
    """Insert a lobby game under a fresh join code, retrying on collisions."""
    attempts = get_settings().join_code_attempts
    for _ in range(attempts):
        join_code = generate_join_code()
        if await storage.join_code_exists(join_code):
            continue

        game = await storage.create_game(Game(
            game_id=generate_id("game_"),
            join_code=join_code,
            state="lobby",
            created_at=datetime.now(timezone.utc),
            **fields,
        ))
        # None means another game took the code after our check
        if game is not None:
            return game

    raise JoinCodeExhaustedError(f"No free join code after {attempts} attempts")


async def create_game(
    storage: Storage,
    title: Optional[str] = None,
    description: Optional[str] = None,
    max_teams: Optional[int] = None,
) -> Game:
    """Create a game in the lobby with a unique join code."""
    if max_teams is not None:
        _check_max_teams(max_teams)

    game = await _allocate_game(
        storage,
        title=title if title is not None else "Untitled Game",
        description=description,
        max_teams=max_teams,
    )
    logger.info("game created", game_id=game.game_id, join_code=game.join_code)
    return game


async def get_game(storage: Storage, game_id: str) -> Game:
    return await require_game(storage, game_id)


async def get_game_by_join_code(storage: Storage, join_code: str) -> Optional[Game]:
    """Look up a game by join code, ignoring case and surrounding spaces."""
    return await storage.get_game_by_join_code(join_code.strip().upper())


async def list_games(storage: Storage, include_archived: bool = False) -> list[GameSummary]:
    """List games newest first, with round and question counts."""
    summaries = []
    for game in await storage.list_games(include_archived=include_archived):
        rounds = await storage.get_rounds(game.game_id)
        question_count = 0
        for round_obj in rounds:
            question_count += len(await storage.get_questions(round_obj.round_id))
        summaries.append(GameSummary(
            **game.model_dump(by_alias=False),
            round_count=len(rounds),
            question_count=question_count,
        ))
    return summaries


async def update_game_meta(
    storage: Storage,
    game_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
) -> Game:
    game = await require_game(storage, game_id)
    ensure_editable(game, "edit game")

    changes = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description

    if not changes:
        return game
    return await storage.update_game(game_id, **changes)


async def archive_game(storage: Storage, game_id: str) -> Game:
    await require_game(storage, game_id)
    return await storage.update_game(game_id, is_archived=True)


async def restore_game(storage: Storage, game_id: str) -> Game:
    await require_game(storage, game_id)
    return await storage.update_game(game_id, is_archived=False)


async def delete_game(storage: Storage, game_id: str) -> None:
    """Hard-delete a game that never left the lobby, with everything in it."""
    game = await require_game(storage, game_id)
    ensure_editable(game, "delete game")
    await storage.delete_game(game_id)
    logger.info("game deleted", game_id=game_id)


async def duplicate_game(storage: Storage, game_id: str) -> Game:
    """Copy a game's rounds and questions into a new lobby game."""
    source = await require_game(storage, game_id)

    copy = await _allocate_game(
        storage,
        title=f"{source.title} (Copy)",
        description=source.description,
        max_teams=source.max_teams,
    )

    for round_obj in await storage.get_rounds(game_id):
        new_round = await storage.add_round(round_obj.model_copy(update={
            "round_id": generate_id("round_"),
            "game_id": copy.game_id,
        }))
        for question in await storage.get_questions(round_obj.round_id):
            await storage.add_question(question.model_copy(update={
                "question_id": generate_id("question_"),
                "round_id": new_round.round_id,
                "finalized_at": None,
            }))

    logger.info("game duplicated", game_id=game_id, copy_id=copy.game_id)
    return copy


async def toggle_lobby_lock(storage: Storage, game_id: str) -> bool:
    """Flip whether new teams may join. Returns the new lock state."""
    game = await require_game(storage, game_id)
    if game.state != "lobby":
        raise GameAlreadyStartedError("Can only lock/unlock in lobby state")

    locked = not game.is_lobby_locked
    await storage.update_game(game_id, is_lobby_locked=locked)
    return locked


def _check_max_teams(max_teams: int) -> None:
    if max_teams < MIN_TEAMS or max_teams > MAX_TEAMS:
        raise InvalidRequestError(f"Max teams must be between {MIN_TEAMS} and {MAX_TEAMS}")


async def update_max_teams(storage: Storage, game_id: str, max_teams: int) -> Game:
    await require_game(storage, game_id)
    _check_max_teams(max_teams)
    return await storage.update_game(game_id, max_teams=max_teams)
