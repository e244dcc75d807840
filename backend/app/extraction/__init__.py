"""
Roster grid extraction pipeline.

Usage:
    from app.extraction import analyze_schedule_images, prepare_image

    images = [prepare_image(data, "roster.jpg")]
    result = await analyze_schedule_images(images, vision_client=client, agent_repo=AgentRepository())
"""

from .errors import ExtractionError, MalformedResponseError, UpstreamTimeoutError, UpstreamUnavailableError
from .extractor import analyze_schedule_images
from .images import PreparedImage, prepare_image
from .schemas import AnalysisMetadata, AnalysisResult, MatchStats, ShiftRecord
from .vision_client import OpenAIVisionClient

__all__ = [
    'ExtractionError',
    'MalformedResponseError',
    'UpstreamTimeoutError',
    'UpstreamUnavailableError',
    'analyze_schedule_images',
    'PreparedImage',
    'prepare_image',
    'AnalysisMetadata',
    'AnalysisResult',
    'MatchStats',
    'ShiftRecord',
    'OpenAIVisionClient',
]
