"""
Abstract base class for storage implementations.

All storage backends must implement this interface. Every method is one
atomic unit with respect to other calls: uniqueness-sensitive inserts are
insert-if-absent, and state writes that race (finalization, game
transitions) are compare-and-set.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..models import Answer, AnswerGrade, Game, GameState, Question, Round, Team


class Storage(ABC):
    """Abstract storage interface for game data."""

    # ========================================================================
    # Games
    # ========================================================================

    @abstractmethod
    async def create_game(self, game: Game) -> Optional[Game]:
        """Insert a game. Returns None if its join code is already in use."""
        pass

    @abstractmethod
    async def get_game(self, game_id: str) -> Optional[Game]:
        """Get game by ID. Returns None if not found."""
        pass

    @abstractmethod
    async def get_game_by_join_code(self, join_code: str) -> Optional[Game]:
        """Get game by its (uppercase) join code. Returns None if not found."""
        pass

    @abstractmethod
    async def join_code_exists(self, join_code: str) -> bool:
        """Check if a game with this join code exists."""
        pass

    @abstractmethod
    async def list_games(self, include_archived: bool = False) -> list[Game]:
        """List games, newest first."""
        pass

    @abstractmethod
    async def update_game(self, game_id: str, **changes: Any) -> Optional[Game]:
        """Patch game fields. Returns updated game or None."""
        pass

    @abstractmethod
    async def transition_game(
        self, game_id: str, expected_state: GameState, **changes: Any
    ) -> Optional[Game]:
        """
        Patch game fields only if the game is still in ``expected_state``.

        Returns the updated game, or None if the game is missing or its
        state changed since it was read.
        """
        pass

    @abstractmethod
    async def delete_game(self, game_id: str) -> None:
        """Delete a game with its rounds, questions, answers and teams."""
        pass

    @abstractmethod
    async def reset_game(self, game_id: str, preserve_teams: bool) -> Optional[Game]:
        """
        Return a game to the lobby.

        Clears the round/question pointer, deletes every answer, clears the
        finalized marker of every question, and either zeroes team totals
        or deletes the teams.
        """
        pass

    # ========================================================================
    # Teams
    # ========================================================================

    @abstractmethod
    async def add_team(self, team: Team) -> Optional[Team]:
        """Insert a team. Returns None if the name is taken (case-insensitive)."""
        pass

    @abstractmethod
    async def get_team(self, team_id: str) -> Optional[Team]:
        pass

    @abstractmethod
    async def get_teams(self, game_id: str) -> list[Team]:
        """Get all teams in a game, in join order."""
        pass

    @abstractmethod
    async def delete_team(self, team_id: str) -> None:
        """Delete a team and its answers."""
        pass

    # ========================================================================
    # Rounds
    # ========================================================================

    @abstractmethod
    async def add_round(self, round_obj: Round) -> Round:
        pass

    @abstractmethod
    async def get_round(self, round_id: str) -> Optional[Round]:
        pass

    @abstractmethod
    async def get_rounds(self, game_id: str) -> list[Round]:
        """Get all rounds in a game ordered by round number."""
        pass

    @abstractmethod
    async def update_round(self, round_id: str, **changes: Any) -> Optional[Round]:
        pass

    @abstractmethod
    async def delete_round(self, round_id: str) -> None:
        """Delete a round with its questions and their answers."""
        pass

    @abstractmethod
    async def set_round_numbers(self, numbers: dict[str, int]) -> None:
        """Set ``round_number`` for each round_id in the mapping."""
        pass

    # ========================================================================
    # Questions
    # ========================================================================

    @abstractmethod
    async def add_question(self, question: Question) -> Question:
        pass

    @abstractmethod
    async def get_question(self, question_id: str) -> Optional[Question]:
        pass

    @abstractmethod
    async def get_questions(self, round_id: str) -> list[Question]:
        """Get all questions in a round ordered by index."""
        pass

    @abstractmethod
    async def put_question(self, question: Question) -> Question:
        """Replace a stored question with a new version of it."""
        pass

    @abstractmethod
    async def delete_question(self, question_id: str) -> None:
        """Delete a question and its answers."""
        pass

    @abstractmethod
    async def set_question_indexes(self, indexes: dict[str, int]) -> None:
        """Set ``index_in_round`` for each question_id in the mapping."""
        pass

    # ========================================================================
    # Answers
    # ========================================================================

    @abstractmethod
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
        """
        Store a team's answer to a question.

        Inserts under ``answer_id`` if the team has not answered yet,
        otherwise overwrites the content of the existing answer and returns
        it with its original ID.
        """
        pass

    @abstractmethod
    async def get_answer(self, answer_id: str) -> Optional[Answer]:
        pass

    @abstractmethod
    async def get_team_answer(self, question_id: str, team_id: str) -> Optional[Answer]:
        pass

    @abstractmethod
    async def get_question_answers(self, question_id: str) -> list[Answer]:
        """Get all answers for a question in submission order."""
        pass

    @abstractmethod
    async def get_team_answers(self, team_id: str) -> list[Answer]:
        pass

    @abstractmethod
    async def update_answer_grades(self, grades: dict[str, AnswerGrade]) -> None:
        """Write auto-grading results (answer_id -> grade)."""
        pass

    @abstractmethod
    async def set_final_score(self, answer_id: str, score: int) -> Optional[Answer]:
        """Set an answer's final score and clear its review flag."""
        pass

    @abstractmethod
    async def finalize_question(self, question_id: str) -> Optional[list[Answer]]:
        """
        Commit a question's scores into team totals, once.

        Marks the question finalized, locks in each answer's final score
        (final, else auto, else 0) and adds it to the team's total. Returns
        the finalized answers, or None if the question was already
        finalized, in which case nothing is written.
        """
        pass
