"""
Team membership: joining the lobby, listing, removal and answer history.
"""
from datetime import datetime, timezone

import structlog

from ..errors import (
    GameAlreadyStartedError,
    GameNotFoundError,
    InvalidRequestError,
    LobbyFullError,
    LobbyLockedError,
    TeamNameTakenError,
)
from ..models import Team, TeamHistoryEntry
from ..storage import Storage
from .codes import generate_id
from .lookups import ensure_editable, require_game, require_team

logger = structlog.get_logger()


async def join_game(storage: Storage, game_id: str, name: str) -> Team:
    """
    Add a team to a game that is still in the lobby.

    Team names are unique per game, ignoring case.
    """
    name = name.strip()
    if not name:
        raise InvalidRequestError("Team name is required")

    game = await storage.get_game(game_id)
    if game is None:
        raise GameNotFoundError()
    if game.state != "lobby":
        raise GameAlreadyStartedError()
    if game.is_lobby_locked:
        raise LobbyLockedError()

    if game.max_teams is not None:
        teams = await storage.get_teams(game_id)
        if len(teams) >= game.max_teams:
            raise LobbyFullError(f"Lobby is full ({game.max_teams} teams max)")

    team = await storage.add_team(Team(
        team_id=generate_id("team_"),
        game_id=game_id,
        name=name,
        created_at=datetime.now(timezone.utc),
    ))
    if team is None:
        raise TeamNameTakenError()

    logger.info("team joined", team_id=team.team_id, team_name=team.name, game_id=game_id)
    return team


async def get_teams(storage: Storage, game_id: str) -> list[Team]:
    return await storage.get_teams(game_id)


async def get_team(storage: Storage, team_id: str) -> Team:
    return await require_team(storage, team_id)


async def remove_team(storage: Storage, team_id: str) -> None:
    """Kick a team from the lobby, dropping its answers."""
    team = await require_team(storage, team_id)
    game = await require_game(storage, team.game_id)
    ensure_editable(game, "remove team")

    await storage.delete_team(team_id)
    logger.info("team removed", team_id=team_id, game_id=team.game_id)


async def get_team_history(storage: Storage, team_id: str) -> list[TeamHistoryEntry]:
    """A team's answers with the question each one was for, oldest first."""
    await require_team(storage, team_id)

    history = []
    for answer in await storage.get_team_answers(team_id):
        question = await storage.get_question(answer.question_id)
        if question is None:
            continue
        history.append(TeamHistoryEntry(
            **answer.model_dump(by_alias=False),
            question_prompt=question.prompt,
            correct_answer=question.correct_answer,
            points=question.points,
        ))

    history.sort(key=lambda entry: entry.submitted_at)
    return history
