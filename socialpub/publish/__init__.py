"""
Publishing package: Graph client, platform adapters, publisher, due-post sweeper.
"""

from socialpub.publish.facebook import FacebookAdapter
from socialpub.publish.graph import GraphClient
from socialpub.publish.instagram import InstagramAdapter
from socialpub.publish.publisher import Publisher, PublishResult
from socialpub.publish.scheduler import DuePostSweeper, SweepSummary

__all__ = [
    "GraphClient",
    "InstagramAdapter",
    "FacebookAdapter",
    "Publisher",
    "PublishResult",
    "DuePostSweeper",
    "SweepSummary",
]
