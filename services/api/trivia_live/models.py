"""
Pydantic models for the game domain and the API request/response schemas.

All models use camelCase for JSON serialization to match the API contract.
Questions are a tagged union on ``type``: each variant carries only the
fields its grading strategy reads.
"""
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class CamelCaseModel(BaseModel):
    """
    Base model that converts snake_case to camelCase for JSON serialization.

    This ensures API responses match the contract (e.g., game_id → gameId).
    Also accepts camelCase in request bodies for client convenience.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,  # Accept both snake_case and camelCase in requests
        serialize_by_alias=True,  # Always serialize using camelCase aliases
    )


GameState = Literal["lobby", "in_round", "grading", "between_rounds", "finished"]
RoundType = Literal["standard", "listening", "media"]
QuestionType = Literal["text", "multiple_choice", "numeric", "media"]
MediaType = Literal["image", "video", "audio", "youtube"]

TransitionReason = Literal[
    "no_round",
    "no_rounds",
    "no_question",
    "end_of_round",
    "end_of_game",
    "no_more_rounds",
    "not_lobby",
    "not_in_round",
    "not_grading",
    "not_between_rounds",
    "already_finalized",
    "already_finished",
    "game_finished",
    "conflict",
]


# ============================================================================
# Core Domain Models
# ============================================================================

class Game(CamelCaseModel):
    """A trivia game and its live progression pointer."""
    game_id: str
    join_code: str
    title: str = "Untitled Game"
    description: Optional[str] = None
    state: GameState = "lobby"
    current_round_id: Optional[str] = None
    current_question_index: Optional[int] = None
    is_archived: bool = False
    is_lobby_locked: bool = False
    max_teams: Optional[int] = Field(default=None, ge=1, le=100)
    created_at: datetime


class Team(CamelCaseModel):
    """A team playing in a game."""
    team_id: str
    game_id: str
    name: str
    total_score: int = 0
    created_at: datetime


class Round(CamelCaseModel):
    """A round; ``round_number`` is 1-based and contiguous within a game."""
    round_id: str
    game_id: str
    title: str
    round_number: int
    type: RoundType = "standard"


class AnswerField(CamelCaseModel):
    """One part of a compound answer (e.g. composer AND piece)."""
    id: str
    label: str
    correct_answer: str
    accepted_answers: list[str] = Field(default_factory=list)


class QuestionBase(CamelCaseModel):
    question_id: str
    round_id: str
    index_in_round: int
    prompt: str
    points: int = Field(default=1, gt=0)
    correct_answer: str
    finalized_at: Optional[datetime] = None

    @property
    def is_finalized(self) -> bool:
        return self.finalized_at is not None


class TextQuestion(QuestionBase):
    """Free-text question graded by fuzzy matching."""
    type: Literal["text"] = "text"
    accepted_answers: list[str] = Field(default_factory=list)
    answer_fields: list[AnswerField] = Field(default_factory=list)


class MediaQuestion(TextQuestion):
    """Free-text question shown alongside an image, clip or track."""
    type: Literal["media"] = "media"
    media_url: Optional[str] = None
    media_type: Optional[MediaType] = None


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: list[str] = Field(default_factory=list)


class NumericQuestion(QuestionBase):
    type: Literal["numeric"] = "numeric"


Question = Annotated[
    Union[TextQuestion, MediaQuestion, MultipleChoiceQuestion, NumericQuestion],
    Field(discriminator="type"),
]

QUESTION_ADAPTER: TypeAdapter[Question] = TypeAdapter(Question)


class Answer(CamelCaseModel):
    """A team's submission for one question, plus its three score slots."""
    answer_id: str
    question_id: str
    team_id: str
    raw_answer: str
    normalized_answer: str
    answers: Optional[dict[str, str]] = None
    normalized_answers: Optional[dict[str, str]] = None
    auto_score: Optional[int] = None
    needs_review: bool = True
    final_score: Optional[int] = None
    submitted_at: datetime


class AnswerGrade(CamelCaseModel):
    """Auto-grading outcome written back onto an answer."""
    auto_score: int
    needs_review: bool
    final_score: Optional[int] = None


# ============================================================================
# Read Models
# ============================================================================

class GameSummary(Game):
    """Game listing entry for the admin panel."""
    round_count: int = 0
    question_count: int = 0


class GameStateView(CamelCaseModel):
    """Full game state pushed to every connected client."""
    game: Game
    current_round: Optional[Round] = None
    current_question: Optional[Question] = None
    rounds: list[Round] = Field(default_factory=list)


class CurrentQuestion(CamelCaseModel):
    question: Question
    round_title: str
    round_number: int
    question_number: int
    total_questions: int


class AnswerWithTeam(Answer):
    team_name: str


class TeamHistoryEntry(Answer):
    question_prompt: str
    correct_answer: str
    points: int


class SubmissionStatus(CamelCaseModel):
    has_submitted: bool
    answer: Optional[str] = None
    answers: Optional[dict[str, str]] = None
    submitted_at: Optional[datetime] = None


class TeamSubmission(CamelCaseModel):
    team_id: str
    team_name: str
    has_submitted: bool


class GameSubmissionStatus(CamelCaseModel):
    teams: list[TeamSubmission] = Field(default_factory=list)
    submitted_count: int = 0
    total_teams: int = 0


class StandingEntry(CamelCaseModel):
    """Standings entry."""
    rank: int
    team_id: str
    team_name: str
    total_score: int


class RoundInfo(CamelCaseModel):
    round_id: str
    title: str
    round_number: int


class TeamRoundScore(CamelCaseModel):
    team_id: str
    team_name: str
    round_score: int
    total_score: int


class RoundSummary(CamelCaseModel):
    """Per-team results of the round that just ended."""
    current_round: RoundInfo
    teams: list[TeamRoundScore]
    top_scorer_this_round: Optional[TeamRoundScore] = None


class TransitionResult(CamelCaseModel):
    """
    Outcome of a state machine transition.

    ``success=False`` is an expected outcome that the host UI branches on,
    never an error.
    """
    success: bool
    reason: Optional[TransitionReason] = None
    state: Optional[GameState] = None
    next_round: Optional[Round] = None
    finalized_count: Optional[int] = None


class GradeResult(CamelCaseModel):
    graded_count: int


class FinalizeResult(CamelCaseModel):
    finalized_count: int


# ============================================================================
# API Request Models
# ============================================================================

class CreateGameRequest(CamelCaseModel):
    """Request to create a new game."""
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    max_teams: Optional[int] = Field(default=None, ge=1, le=100)


class UpdateGameRequest(CamelCaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)


class UpdateMaxTeamsRequest(CamelCaseModel):
    max_teams: int


class CreateRoundRequest(CamelCaseModel):
    title: str = Field(min_length=1, max_length=200)
    type: RoundType = "standard"


class UpdateRoundRequest(CamelCaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[RoundType] = None


class ReorderRoundsRequest(CamelCaseModel):
    round_ids: list[str]


class CreateQuestionRequest(CamelCaseModel):
    """Question fields; which ones apply depends on ``type``."""
    type: QuestionType = "text"
    prompt: str = Field(min_length=1)
    points: int = Field(default=1, gt=0)
    correct_answer: str
    accepted_answers: Optional[list[str]] = None
    options: Optional[list[str]] = None
    answer_fields: Optional[list[AnswerField]] = None
    media_url: Optional[str] = None
    media_type: Optional[MediaType] = None


class UpdateQuestionRequest(CamelCaseModel):
    type: Optional[QuestionType] = None
    prompt: Optional[str] = Field(default=None, min_length=1)
    points: Optional[int] = Field(default=None, gt=0)
    correct_answer: Optional[str] = None
    accepted_answers: Optional[list[str]] = None
    options: Optional[list[str]] = None
    answer_fields: Optional[list[AnswerField]] = None
    media_url: Optional[str] = None
    media_type: Optional[MediaType] = None


class ReorderQuestionsRequest(CamelCaseModel):
    question_ids: list[str]


class JoinGameRequest(CamelCaseModel):
    """Request to join a game as a team."""
    name: str = Field(min_length=1, max_length=50)


class SubmitAnswerRequest(CamelCaseModel):
    """A team's answer: free text, a field map, or both."""
    team_id: str
    raw_answer: Optional[str] = Field(default=None, max_length=500)
    answers: Optional[dict[str, str]] = None


class SetFinalScoreRequest(CamelCaseModel):
    final_score: int


class StartRoundRequest(CamelCaseModel):
    round_id: Optional[str] = None


class ResetGameRequest(CamelCaseModel):
    preserve_teams: bool = True


# ============================================================================
# API Response Models
# ============================================================================

class CreateGameResponse(CamelCaseModel):
    game_id: str
    join_code: str


class JoinGameResponse(CamelCaseModel):
    team_id: str


class SubmitAnswerResponse(CamelCaseModel):
    answer_id: str


class LobbyLockResponse(CamelCaseModel):
    is_lobby_locked: bool


class HealthResponse(CamelCaseModel):
    """Health check response."""
    status: str = "ok"
    version: str = "1.0.0"
    storage: str = "memory"


class ErrorResponse(CamelCaseModel):
    """Standard error response."""
    code: str
    message: str
