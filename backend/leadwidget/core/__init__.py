"""
Core module for the Chalk Leads widget backend.

Contains configuration and database setup.
"""

from .config import settings
from .database import get_db, engine, SessionLocal

__all__ = ["settings", "get_db", "engine", "SessionLocal"]
