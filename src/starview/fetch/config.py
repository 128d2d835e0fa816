"""
Configuration for a Fetcher.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from starview.constants import (
    API_HOST,
    CACHE_FILE_NAME,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
)
from starview.download.config import clamp_float, clamp_int
from starview.enums import DeviceType


@dataclass
class FetchConfig:
    """Configuration options for a Fetcher."""

    cache_path: Union[str, Path] = Path(CACHE_FILE_NAME)
    """Location of the fetch cache file"""

    device_type: DeviceType = DeviceType.ALL
    """Device type assets are resolved for"""

    api_host: Optional[str] = API_HOST
    retry_count: int = DEFAULT_RETRY_COUNT
    """Additional attempts per file when downloading"""

    retry_delay: float = DEFAULT_RETRY_DELAY

    def __post_init__(self) -> None:
        self.cache_path = Path(self.cache_path)
        if not isinstance(self.device_type, DeviceType):
            self.device_type = DeviceType(self.device_type)
        self.retry_count = clamp_int("retry_count", self.retry_count, DEFAULT_RETRY_COUNT, 0)
        self.retry_delay = clamp_float("retry_delay", self.retry_delay, DEFAULT_RETRY_DELAY)
