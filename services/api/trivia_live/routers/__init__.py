"""
API Routers for Trivia Live.
"""
from .answers import router as answers_router
from .games import router as games_router
from .health import router as health_router
from .host import router as host_router
from .questions import router as questions_router
from .rounds import router as rounds_router
from .teams import router as teams_router

__all__ = [
    "answers_router",
    "games_router",
    "health_router",
    "host_router",
    "questions_router",
    "rounds_router",
    "teams_router",
]
