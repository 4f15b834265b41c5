"""
Database module for Starbridge

Provides the async connection manager and the declarative base used by
every ORM model.
"""

from .base import Base, BaseModel, new_id, utcnow
from .connection import DatabaseManager

__all__ = [
    'Base',
    'BaseModel',
    'DatabaseManager',
    'new_id',
    'utcnow',
]
