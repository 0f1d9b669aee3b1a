from typing import NamedTuple, Optional
from unittest.mock import AsyncMock

import pytest
from starlette.testclient import TestClient

from trivia_live.dependencies import set_storage
from trivia_live.main import app
from trivia_live.models import Game, Question, Round, Team
from trivia_live.services import games, questions, rounds, teams
from trivia_live.socket_manager import sio
from trivia_live.storage import InMemoryStorage


class SeededGame(NamedTuple):
    game: Game
    rounds: list[Round]
    questions: list[list[Question]]
    teams: list[Team]


def text_question(answer: str = "Paris", points: int = 1, **extra) -> dict:
    return {"type": "text", "prompt": f"What is {answer}?", "points": points, "correct_answer": answer, **extra}


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture(autouse=True)
def emitted(monkeypatch):
    """Socket.IO broadcasts, captured instead of sent."""
    emit = AsyncMock()
    monkeypatch.setattr(sio, "emit", emit)
    return emit


@pytest.fixture
def client(storage):
    set_storage(storage)
    yield TestClient(app)
    set_storage(None)


@pytest.fixture
def seed_game(storage):
    """
    Build a lobby game. ``round_questions`` holds one list of question
    field dicts per round.
    """

    async def build(
        round_questions: Optional[list[list[dict]]] = None,
        team_names: tuple[str, ...] = ("Alpha", "Beta"),
        max_teams: Optional[int] = None,
    ) -> SeededGame:
        if round_questions is None:
            round_questions = [[text_question("Paris"), text_question("Rome")]]

        game = await games.create_game(storage, title="Quiz Night", max_teams=max_teams)

        created_rounds = []
        created_questions = []
        for number, fields_list in enumerate(round_questions, start=1):
            round_obj = await rounds.create_round(storage, game.game_id, f"Round {number}")
            created_rounds.append(round_obj)
            created_questions.append([
                await questions.create_question(storage, round_obj.round_id, fields)
                for fields in fields_list
            ])

        created_teams = [await teams.join_game(storage, game.game_id, name) for name in team_names]

        return SeededGame(
            game=await storage.get_game(game.game_id),
            rounds=created_rounds,
            questions=created_questions,
            teams=created_teams,
        )

    return build
