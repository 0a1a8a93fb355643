"""
TED Talk API - Business Services
"""

from .influence_service import InfluenceService, rank_speakers
from .talk_service import TalkService

__all__ = [
    "InfluenceService",
    "TalkService",
    "rank_speakers",
]
