"""
Repository layer for data access.

This module provides a clean abstraction over database operations,
following the repository pattern. All database access should go through
these repositories rather than directly using SQLAlchemy models.

Usage:
    from app.repositories import AgentRepository, AnalysisHistoryRepository
    
    agent_repo = AgentRepository()
    agent = agent_repo.get_by_cedula("1020304050")
    
    history_repo = AnalysisHistoryRepository()
    latest = history_repo.list_recent(limit=10)
"""

from .base import BaseRepository
from .agent_repository import AgentRepository
from .analysis_history_repository import AnalysisHistoryRepository
from .stored_file_repository import StoredFileRepository

__all__ = [
    'BaseRepository',
    'AgentRepository',
    'AnalysisHistoryRepository',
    'StoredFileRepository',
]
