"""
Core module for the OpsBoard backend.

Contains configuration, database setup, and shared exceptions.
"""

from .config import settings
from .database import get_db, engine, SessionLocal

__all__ = ["settings", "get_db", "engine", "SessionLocal"]
