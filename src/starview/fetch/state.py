"""
Progress states published by the Fetcher.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from starview.download.state import DownloadState


class FetchOperation(str, Enum):
    IDLE = "idle"
    ASSET_INFO = "asset_info"
    DOWNLOAD_ASSETS = "download_assets"
    DOWNLOAD_FILES_LIST = "download_files_list"


class FetchPhase(str, Enum):
    NOT_STARTED = "not_started"
    GET_ASSET_VERSION = "get_asset_version"
    GET_ASSET_INFO = "get_asset_info"
    FETCH_ASSET_INFO = "fetch_asset_info"
    DOWNLOAD_START = "download_start"
    DOWNLOAD = "download"
    FINISH = "finish"


@dataclass(frozen=True)
class FetchState:
    """
    A single Fetcher progress update.

    `total` is set on DOWNLOAD_START: total bytes for DOWNLOAD_ASSETS and the
    number of files for DOWNLOAD_FILES_LIST. `download` carries the forwarded
    Downloader state on DOWNLOAD.
    """

    operation: FetchOperation
    phase: FetchPhase
    total: Optional[int] = None
    download: Optional[DownloadState] = None

    @classmethod
    def not_started(cls) -> "FetchState":
        return cls(FetchOperation.IDLE, FetchPhase.NOT_STARTED)

    @property
    def is_finished(self) -> bool:
        return self.phase is FetchPhase.FINISH
