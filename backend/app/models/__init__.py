from .roster import Agent, AgentAlias
from .analysis import AnalysisHistory
from .storage import StoredFile

__all__ = [
    'Agent',
    'AgentAlias',
    'AnalysisHistory',
    'StoredFile',
]
