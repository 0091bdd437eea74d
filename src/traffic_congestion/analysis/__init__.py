"""Congestion-episode analysis stages.

Stage modules are imported directly (``analysis.threshold``,
``analysis.segmenter``, ``analysis.reporter``); only the dependency-free
scorer is re-exported here since ``models`` builds on it.
"""

from .severity import SEVERITY_WEIGHTS, score

__all__ = ["SEVERITY_WEIGHTS", "score"]
