"""
Configuration for a Downloader run.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

from starview.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
)
from starview.log_utils import logger

Pathish = Union[str, Path]


def clamp_int(name: str, value: Any, default: int, minimum: int) -> int:
    """
    Normalize a value to an integer no smaller than `minimum`.

    Returns `default` when the value cannot be parsed and `minimum` when it is
    below the limit, logging a warning in both cases.
    """
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value %r; using default of %d", name, value, default)
        return default
    if parsed < minimum:
        logger.warning("%s must be >= %d; clamping %d to %d", name, minimum, parsed, minimum)
        return minimum
    return parsed


def clamp_float(name: str, value: Any, default: float, minimum: float = 0.0) -> float:
    """Float counterpart of `clamp_int`."""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value %r; using default %.3f", name, value, default)
        return default
    if parsed < minimum:
        logger.warning(
            "%s must be >= %.3f; clamping %.3f to %.3f", name, minimum, parsed, minimum
        )
        return minimum
    return parsed


@dataclass
class DownloadConfig:
    """Configuration options for a Downloader."""

    urls: List[str] = field(default_factory=list)
    """URLs of the files to download"""

    out_path: Pathish = Path(".")
    """Directory that downloaded files are saved under"""

    concurrency: int = DEFAULT_CONCURRENCY
    """Maximum number of files downloaded at the same time"""

    retry_count: int = DEFAULT_RETRY_COUNT
    """Additional attempts made after a failed download"""

    retry_delay: float = DEFAULT_RETRY_DELAY
    """Seconds to wait after the first failure; doubled after each further failure"""

    url_strip_prefix: Optional[str] = None
    """Removed from the start of each URL path before it is joined onto out_path"""

    def __post_init__(self) -> None:
        self.out_path = Path(self.out_path)
        self.concurrency = clamp_int("concurrency", self.concurrency, DEFAULT_CONCURRENCY, 1)
        self.retry_count = clamp_int("retry_count", self.retry_count, DEFAULT_RETRY_COUNT, 0)
        self.retry_delay = clamp_float("retry_delay", self.retry_delay, DEFAULT_RETRY_DELAY)
