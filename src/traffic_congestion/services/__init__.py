"""Services module for traffic congestion analysis."""

from .congestion import CongestionService, get_congestion_service, reset_congestion_service
from .readings import ReadingStore

__all__ = [
    "CongestionService",
    "get_congestion_service",
    "reset_congestion_service",
    "ReadingStore",
]
