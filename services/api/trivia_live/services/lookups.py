"""
Entity lookups shared by the services.

Each ``require_*`` helper returns the entity or raises the matching
not-found error, so callers validate before they write.
"""
from typing import Optional

from ..errors import (
    AnswerNotFoundError,
    GameNotEditableError,
    GameNotFoundError,
    QuestionNotFoundError,
    RoundNotFoundError,
    TeamNotFoundError,
)
from ..models import Answer, Game, Question, Round, Team
from ..storage import Storage


async def require_game(storage: Storage, game_id: str) -> Game:
    game = await storage.get_game(game_id)
    if game is None:
        raise GameNotFoundError()
    return game


async def require_team(storage: Storage, team_id: str) -> Team:
    team = await storage.get_team(team_id)
    if team is None:
        raise TeamNotFoundError()
    return team


async def require_round(storage: Storage, round_id: str) -> Round:
    round_obj = await storage.get_round(round_id)
    if round_obj is None:
        raise RoundNotFoundError()
    return round_obj


async def require_question(storage: Storage, question_id: str) -> Question:
    question = await storage.get_question(question_id)
    if question is None:
        raise QuestionNotFoundError()
    return question


async def require_answer(storage: Storage, answer_id: str) -> Answer:
    answer = await storage.get_answer(answer_id)
    if answer is None:
        raise AnswerNotFoundError()
    return answer


async def game_for_question(storage: Storage, question: Question) -> Game:
    round_obj = await require_round(storage, question.round_id)
    return await require_game(storage, round_obj.game_id)


def ensure_editable(game: Game, action: str = "edit game") -> None:
    """Authoring changes are only allowed while the game is in the lobby."""
    if game.state != "lobby":
        raise GameNotEditableError(f"Cannot {action} - game has started")


async def current_question(storage: Storage, game: Game) -> Optional[Question]:
    """The question under the game's round/question pointer, if any."""
    if game.current_round_id is None or game.current_question_index is None:
        return None
    questions = await storage.get_questions(game.current_round_id)
    if 0 <= game.current_question_index < len(questions):
        return questions[game.current_question_index]
    return None
