"""
Round authoring. Round numbers stay a contiguous 1..N sequence per game.
"""
from typing import Optional

import structlog

from ..errors import InvalidRequestError
from ..models import Round, RoundType
from ..storage import Storage
from .codes import generate_id
from .lookups import ensure_editable, require_game, require_round

logger = structlog.get_logger()


async def create_round(
    storage: Storage, game_id: str, title: str, round_type: RoundType = "standard"
) -> Round:
    """Append a round to the end of the game."""
    game = await require_game(storage, game_id)
    ensure_editable(game, "add round")

    rounds = await storage.get_rounds(game_id)
    return await storage.add_round(Round(
        round_id=generate_id("round_"),
        game_id=game_id,
        title=title,
        round_number=len(rounds) + 1,
        type=round_type,
    ))


async def get_rounds(storage: Storage, game_id: str) -> list[Round]:
    return await storage.get_rounds(game_id)


async def update_round(
    storage: Storage,
    round_id: str,
    title: Optional[str] = None,
    round_type: Optional[RoundType] = None,
) -> Round:
    round_obj = await require_round(storage, round_id)
    game = await require_game(storage, round_obj.game_id)
    ensure_editable(game, "edit round")

    changes = {}
    if title is not None:
        changes["title"] = title
    if round_type is not None:
        changes["type"] = round_type

    if not changes:
        return round_obj
    return await storage.update_round(round_id, **changes)


async def renumber_rounds(storage: Storage, game_id: str) -> None:
    """Close gaps in round numbering, keeping the current order."""
    rounds = await storage.get_rounds(game_id)
    numbers = {
        r.round_id: position
        for position, r in enumerate(rounds, start=1)
        if r.round_number != position
    }
    if numbers:
        await storage.set_round_numbers(numbers)


async def delete_round(storage: Storage, round_id: str) -> None:
    round_obj = await require_round(storage, round_id)
    game = await require_game(storage, round_obj.game_id)
    ensure_editable(game, "delete round")

    await storage.delete_round(round_id)
    await renumber_rounds(storage, round_obj.game_id)
    logger.info("round deleted", round_id=round_id, game_id=round_obj.game_id)


async def reorder_rounds(storage: Storage, game_id: str, round_ids: list[str]) -> list[Round]:
    """Renumber rounds to follow ``round_ids``, which must list every round once."""
    game = await require_game(storage, game_id)
    ensure_editable(game, "reorder rounds")

    existing = {r.round_id for r in await storage.get_rounds(game_id)}
    if len(round_ids) != len(existing) or set(round_ids) != existing:
        raise InvalidRequestError("Round order must list every round in the game exactly once")

    await storage.set_round_numbers(
        {round_id: position for position, round_id in enumerate(round_ids, start=1)}
    )
    return await storage.get_rounds(game_id)
