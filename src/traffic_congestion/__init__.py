"""Grid traffic congestion analysis: snapshot, history and sustained-episode views."""

__version__ = "1.0.0"
