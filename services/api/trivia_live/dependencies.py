"""
FastAPI dependencies for dependency injection.
"""
from typing import Optional

from .config import get_settings
from .storage import InMemoryStorage, SQLStorage, Storage

# Global storage instance (will be set on app startup)
_storage: Optional[Storage] = None


def get_storage() -> Storage:
    """Get the storage instance for the configured backend."""
    global _storage
    if _storage is None:
        settings = get_settings()
        if settings.storage_type == "sql":
            _storage = SQLStorage()
        else:
            _storage = InMemoryStorage()
    return _storage


def set_storage(storage: Optional[Storage]) -> None:
    """Set the storage instance (for testing or switching implementations)."""
    global _storage
    _storage = storage
