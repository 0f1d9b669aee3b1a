"""
Database module for Trivia Live.

Provides SQLAlchemy models and async database connection.
"""
from .models import Base, GameModel, TeamModel, RoundModel, QuestionModel, AnswerModel
from .connection import get_db_engine, get_db_session_context, init_db, close_db

__all__ = [
    "Base",
    "GameModel",
    "TeamModel",
    "RoundModel",
    "QuestionModel",
    "AnswerModel",
    "get_db_engine",
    "get_db_session_context",
    "init_db",
    "close_db",
]
