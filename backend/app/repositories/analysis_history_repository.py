from typing import List
from .base import BaseRepository
from ..models.analysis import AnalysisHistory


class AnalysisHistoryRepository(BaseRepository[AnalysisHistory]):
    """Repository for generated-roster history entries."""
    
    def __init__(self):
        super().__init__(AnalysisHistory)
    
    def list_recent(self, limit: int = 20) -> List[AnalysisHistory]:
        """
        Get the most recent history entries, newest first.
        
        Args:
            limit: Maximum number of entries to return
        """
        return self.session.query(AnalysisHistory).order_by(
            AnalysisHistory.created_at.desc()
        ).limit(limit).all()
