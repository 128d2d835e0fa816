"""
Asset resolution and fetch orchestration.
"""

from .cache import FetchCache
from .config import FetchConfig
from .fetcher import Fetcher, validate_dir
from .state import FetchOperation, FetchPhase, FetchState

__all__ = [
    "FetchCache",
    "FetchConfig",
    "Fetcher",
    "FetchOperation",
    "FetchPhase",
    "FetchState",
    "validate_dir",
]
