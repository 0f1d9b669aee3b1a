"""
Health check endpoint.
"""
from typing import Annotated

from fastapi import APIRouter, Depends

from .. import __version__
from ..config import Settings, get_settings
from ..models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Annotated[Settings, Depends(get_settings)]) -> HealthResponse:
    """Check if the API is running and which storage backend it uses."""
    return HealthResponse(status="ok", version=__version__, storage=settings.storage_type)
