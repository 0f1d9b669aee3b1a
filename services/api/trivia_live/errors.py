"""
Error types raised by the game services.

Expected gameplay outcomes (end of round, wrong state for a transition) are
not errors: they come back as ``TransitionResult`` values. Everything here is
an integrity or usage failure that aborts the operation before any write.
Each error carries a stable ``code`` that the API returns to clients.
"""
from fastapi import status


class TriviaError(Exception):
    """Base class for all game errors surfaced to API clients."""

    code: str = "SERVER_ERROR"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ============================================================================
# Missing entities
# ============================================================================


class NotFoundError(TriviaError):
    status_code = status.HTTP_404_NOT_FOUND


class GameNotFoundError(NotFoundError):
    code = "GAME_NOT_FOUND"
    default_message = "Game not found"


class TeamNotFoundError(NotFoundError):
    code = "TEAM_NOT_FOUND"
    default_message = "Team not found"


class RoundNotFoundError(NotFoundError):
    code = "ROUND_NOT_FOUND"
    default_message = "Round not found"


class QuestionNotFoundError(NotFoundError):
    code = "QUESTION_NOT_FOUND"
    default_message = "Question not found"


class AnswerNotFoundError(NotFoundError):
    code = "ANSWER_NOT_FOUND"
    default_message = "Answer not found"


# ============================================================================
# Conflicts with the current game state
# ============================================================================


class ConflictError(TriviaError):
    status_code = status.HTTP_409_CONFLICT


class GameAlreadyStartedError(ConflictError):
    code = "GAME_ALREADY_STARTED"
    default_message = "Game has already started"


class GameNotEditableError(ConflictError):
    code = "GAME_NOT_EDITABLE"
    default_message = "Cannot edit game that has started"


class LobbyLockedError(ConflictError):
    code = "LOBBY_LOCKED"
    default_message = "Lobby is locked"


class LobbyFullError(ConflictError):
    code = "LOBBY_FULL"
    default_message = "Lobby is full"


class TeamNameTakenError(ConflictError):
    code = "TEAM_NAME_TAKEN"
    default_message = "Team name already taken"


class QuestionFinalizedError(ConflictError):
    code = "QUESTION_FINALIZED"
    default_message = "Question scores have already been finalized"


class QuestionAlreadyFinalizedError(QuestionFinalizedError):
    """Raised when finalization is requested a second time for a question."""


class JoinCodeExhaustedError(TriviaError):
    code = "SERVER_ERROR"
    default_message = "Could not allocate a unique join code"


# ============================================================================
# Bad input
# ============================================================================


class InvalidRequestError(TriviaError):
    code = "VALIDATION"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"
