"""
SQLAlchemy ORM models for Trivia Live.

These map to the database tables and mirror the Pydantic models in models.py.
Uniqueness rules the game relies on are declared as constraints here.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class GameModel(Base):
    """Game table."""
    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    join_code: Mapped[str] = mapped_column(String(10), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(200), default="Untitled Game")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    state: Mapped[str] = mapped_column(String(20), default="lobby")

    # Pointer into the active round; no FK so rounds can be deleted freely
    current_round_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    current_question_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    is_lobby_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    max_teams: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime)


class TeamModel(Base):
    """Team in a game."""
    __tablename__ = "teams"
    __table_args__ = (UniqueConstraint("game_id", "name_key", name="uq_team_name"),)

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    game_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("games.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(50))
    # Lowercased name for case-insensitive uniqueness
    name_key: Mapped[str] = mapped_column(String(50))
    total_score: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime)


class RoundModel(Base):
    """A round in a game."""
    __tablename__ = "rounds"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    game_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("games.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String(200))
    round_number: Mapped[int] = mapped_column(Integer)
    type: Mapped[str] = mapped_column(String(20), default="standard")


class QuestionModel(Base):
    """A question in a round. Type-specific fields are nullable."""
    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    round_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("rounds.id", ondelete="CASCADE"), index=True
    )
    index_in_round: Mapped[int] = mapped_column(Integer)
    prompt: Mapped[str] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(20))
    points: Mapped[int] = mapped_column(Integer)
    correct_answer: Mapped[str] = mapped_column(Text)
    accepted_answers: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    options: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    answer_fields: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    media_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    media_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    finalized_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class AnswerModel(Base):
    """A team's answer to a question."""
    __tablename__ = "answers"
    __table_args__ = (UniqueConstraint("question_id", "team_id", name="uq_answer_team"),)

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    question_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("questions.id", ondelete="CASCADE"), index=True
    )
    team_id: Mapped[str] = mapped_column(
        String(100), ForeignKey("teams.id", ondelete="CASCADE"), index=True
    )
    raw_answer: Mapped[str] = mapped_column(Text)
    normalized_answer: Mapped[str] = mapped_column(Text)
    answers: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    normalized_answers: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Score fields (nullable until graded)
    auto_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    needs_review: Mapped[bool] = mapped_column(Boolean, default=True)
    final_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime)
