"""
In-memory storage implementation for development and testing.

Data is lost when the server restarts - by design for dev/test scenarios.
No method awaits between reading and writing, so each call is atomic on
the event loop.
"""
from datetime import datetime, timezone
from typing import Any, Optional

from ..models import Answer, AnswerGrade, Game, GameState, Question, Round, Team
from .base import Storage


class InMemoryStorage(Storage):
    """In-memory storage using Python dictionaries."""

    def __init__(self):
        # Primary storage
        self._games: dict[str, Game] = {}  # game_id -> Game
        self._teams: dict[str, Team] = {}  # team_id -> Team
        self._rounds: dict[str, Round] = {}  # round_id -> Round
        self._questions: dict[str, Question] = {}  # question_id -> Question
        self._answers: dict[str, Answer] = {}  # answer_id -> Answer

        # Indexes for unique keys
        self._join_codes: dict[str, str] = {}  # join_code -> game_id
        self._answer_keys: dict[tuple[str, str], str] = {}  # (question_id, team_id) -> answer_id

    # ========================================================================
    # Helpers
    # ========================================================================

    def _game_question_ids(self, game_id: str) -> list[str]:
        round_ids = {r.round_id for r in self._rounds.values() if r.game_id == game_id}
        return [q.question_id for q in self._questions.values() if q.round_id in round_ids]

    def _drop_answers(self, predicate) -> None:
        for answer_id in [a.answer_id for a in self._answers.values() if predicate(a)]:
            answer = self._answers.pop(answer_id)
            self._answer_keys.pop((answer.question_id, answer.team_id), None)

    # ========================================================================
    # Games
    # ========================================================================

    async def create_game(self, game: Game) -> Optional[Game]:
        if game.join_code in self._join_codes:
            return None
        self._games[game.game_id] = game
        self._join_codes[game.join_code] = game.game_id
        return game

    async def get_game(self, game_id: str) -> Optional[Game]:
        return self._games.get(game_id)

    async def get_game_by_join_code(self, join_code: str) -> Optional[Game]:
        game_id = self._join_codes.get(join_code)
        if game_id:
            return self._games.get(game_id)
        return None

    async def join_code_exists(self, join_code: str) -> bool:
        return join_code in self._join_codes

    async def list_games(self, include_archived: bool = False) -> list[Game]:
        games = [g for g in self._games.values() if include_archived or not g.is_archived]
        return sorted(games, key=lambda g: g.created_at, reverse=True)

    async def update_game(self, game_id: str, **changes: Any) -> Optional[Game]:
        game = self._games.get(game_id)
        if game:
            # Pydantic models are replaced, never mutated in place
            updated = game.model_copy(update=changes)
            self._games[game_id] = updated
            return updated
        return None

    async def transition_game(
        self, game_id: str, expected_state: GameState, **changes: Any
    ) -> Optional[Game]:
        game = self._games.get(game_id)
        if game is None or game.state != expected_state:
            return None
        updated = game.model_copy(update=changes)
        self._games[game_id] = updated
        return updated

    async def delete_game(self, game_id: str) -> None:
        question_ids = set(self._game_question_ids(game_id))
        self._drop_answers(lambda a: a.question_id in question_ids)
        for question_id in question_ids:
            self._questions.pop(question_id, None)
        for round_id in [r.round_id for r in self._rounds.values() if r.game_id == game_id]:
            self._rounds.pop(round_id)
        for team_id in [t.team_id for t in self._teams.values() if t.game_id == game_id]:
            self._teams.pop(team_id)
        game = self._games.pop(game_id, None)
        if game:
            self._join_codes.pop(game.join_code, None)

    async def reset_game(self, game_id: str, preserve_teams: bool) -> Optional[Game]:
        game = self._games.get(game_id)
        if game is None:
            return None

        question_ids = set(self._game_question_ids(game_id))
        self._drop_answers(lambda a: a.question_id in question_ids)
        for question_id in question_ids:
            question = self._questions[question_id]
            self._questions[question_id] = question.model_copy(update={"finalized_at": None})

        for team in [t for t in self._teams.values() if t.game_id == game_id]:
            if preserve_teams:
                self._teams[team.team_id] = team.model_copy(update={"total_score": 0})
            else:
                self._drop_answers(lambda a: a.team_id == team.team_id)
                del self._teams[team.team_id]

        updated = game.model_copy(update={
            "state": "lobby",
            "current_round_id": None,
            "current_question_index": None,
        })
        self._games[game_id] = updated
        return updated

    # ========================================================================
    # Teams
    # ========================================================================

    async def add_team(self, team: Team) -> Optional[Team]:
        name_key = team.name.lower()
        for existing in self._teams.values():
            if existing.game_id == team.game_id and existing.name.lower() == name_key:
                return None
        self._teams[team.team_id] = team
        return team

    async def get_team(self, team_id: str) -> Optional[Team]:
        return self._teams.get(team_id)

    async def get_teams(self, game_id: str) -> list[Team]:
        return [t for t in self._teams.values() if t.game_id == game_id]

    async def delete_team(self, team_id: str) -> None:
        self._drop_answers(lambda a: a.team_id == team_id)
        self._teams.pop(team_id, None)

    # ========================================================================
    # Rounds
    # ========================================================================

    async def add_round(self, round_obj: Round) -> Round:
        self._rounds[round_obj.round_id] = round_obj
        return round_obj

    async def get_round(self, round_id: str) -> Optional[Round]:
        return self._rounds.get(round_id)

    async def get_rounds(self, game_id: str) -> list[Round]:
        rounds = [r for r in self._rounds.values() if r.game_id == game_id]
        return sorted(rounds, key=lambda r: r.round_number)

    async def update_round(self, round_id: str, **changes: Any) -> Optional[Round]:
        round_obj = self._rounds.get(round_id)
        if round_obj:
            updated = round_obj.model_copy(update=changes)
            self._rounds[round_id] = updated
            return updated
        return None

    async def delete_round(self, round_id: str) -> None:
        question_ids = {q.question_id for q in self._questions.values() if q.round_id == round_id}
        self._drop_answers(lambda a: a.question_id in question_ids)
        for question_id in question_ids:
            del self._questions[question_id]
        self._rounds.pop(round_id, None)

    async def set_round_numbers(self, numbers: dict[str, int]) -> None:
        for round_id, number in numbers.items():
            round_obj = self._rounds.get(round_id)
            if round_obj:
                self._rounds[round_id] = round_obj.model_copy(update={"round_number": number})

    # ========================================================================
    # Questions
    # ========================================================================

    async def add_question(self, question: Question) -> Question:
        self._questions[question.question_id] = question
        return question

    async def get_question(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)

    async def get_questions(self, round_id: str) -> list[Question]:
        questions = [q for q in self._questions.values() if q.round_id == round_id]
        return sorted(questions, key=lambda q: q.index_in_round)

    async def put_question(self, question: Question) -> Question:
        self._questions[question.question_id] = question
        return question

    async def delete_question(self, question_id: str) -> None:
        self._drop_answers(lambda a: a.question_id == question_id)
        self._questions.pop(question_id, None)

    async def set_question_indexes(self, indexes: dict[str, int]) -> None:
        for question_id, index in indexes.items():
            question = self._questions.get(question_id)
            if question:
                self._questions[question_id] = question.model_copy(update={"index_in_round": index})

    # ========================================================================
    # Answers
    # ========================================================================

    async def upsert_answer(
        self,
        answer_id: str,
        question_id: str,
        team_id: str,
        raw_answer: str,
        normalized_answer: str,
        answers: Optional[dict[str, str]] = None,
        normalized_answers: Optional[dict[str, str]] = None,
    ) -> Answer:
        now = datetime.now(timezone.utc)
        content = {
            "raw_answer": raw_answer,
            "normalized_answer": normalized_answer,
            "answers": answers,
            "normalized_answers": normalized_answers,
            "submitted_at": now,
        }

        existing_id = self._answer_keys.get((question_id, team_id))
        if existing_id:
            updated = self._answers[existing_id].model_copy(update=content)
            self._answers[existing_id] = updated
            return updated

        answer = Answer(
            answer_id=answer_id,
            question_id=question_id,
            team_id=team_id,
            **content,
        )
        self._answers[answer_id] = answer
        self._answer_keys[(question_id, team_id)] = answer_id
        return answer

    async def get_answer(self, answer_id: str) -> Optional[Answer]:
        return self._answers.get(answer_id)

    async def get_team_answer(self, question_id: str, team_id: str) -> Optional[Answer]:
        answer_id = self._answer_keys.get((question_id, team_id))
        return self._answers.get(answer_id) if answer_id else None

    async def get_question_answers(self, question_id: str) -> list[Answer]:
        return [a for a in self._answers.values() if a.question_id == question_id]

    async def get_team_answers(self, team_id: str) -> list[Answer]:
        return [a for a in self._answers.values() if a.team_id == team_id]

    async def update_answer_grades(self, grades: dict[str, AnswerGrade]) -> None:
        for answer_id, grade in grades.items():
            answer = self._answers.get(answer_id)
            if answer:
                self._answers[answer_id] = answer.model_copy(update=grade.model_dump(by_alias=False))

    async def set_final_score(self, answer_id: str, score: int) -> Optional[Answer]:
        answer = self._answers.get(answer_id)
        if answer:
            updated = answer.model_copy(update={"final_score": score, "needs_review": False})
            self._answers[answer_id] = updated
            return updated
        return None

    async def finalize_question(self, question_id: str) -> Optional[list[Answer]]:
        question = self._questions.get(question_id)
        if question is None or question.is_finalized:
            return None

        self._questions[question_id] = question.model_copy(
            update={"finalized_at": datetime.now(timezone.utc)}
        )

        finalized = []
        for answer in [a for a in self._answers.values() if a.question_id == question_id]:
            if answer.final_score is None:
                effective = answer.auto_score if answer.auto_score is not None else 0
                answer = answer.model_copy(update={"final_score": effective, "needs_review": False})
                self._answers[answer.answer_id] = answer

            team = self._teams.get(answer.team_id)
            if team:
                self._teams[team.team_id] = team.model_copy(
                    update={"total_score": team.total_score + answer.final_score}
                )
            finalized.append(answer)

        return finalized
