"""
Progress states published by the Downloader.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DownloadStateKind(str, Enum):
    NOT_STARTED = "not_started"
    DOWNLOAD_START = "download_start"
    FILE_DOWNLOAD = "file_download"
    DOWNLOAD_ERROR = "download_error"
    FINISH = "finish"


@dataclass(frozen=True)
class DownloadState:
    """
    A single downloader progress update.

    `value` holds the number of files for DOWNLOAD_START and the number of
    bytes written for FILE_DOWNLOAD. `url` and `error` identify the unit for
    FILE_DOWNLOAD and DOWNLOAD_ERROR.
    """

    kind: DownloadStateKind
    value: int = 0
    url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def not_started(cls) -> "DownloadState":
        return cls(DownloadStateKind.NOT_STARTED)

    @classmethod
    def download_start(cls, file_count: int) -> "DownloadState":
        return cls(DownloadStateKind.DOWNLOAD_START, value=file_count)

    @classmethod
    def file_download(cls, size: int, url: Optional[str] = None) -> "DownloadState":
        return cls(DownloadStateKind.FILE_DOWNLOAD, value=size, url=url)

    @classmethod
    def download_error(cls, url: str, error: str) -> "DownloadState":
        return cls(DownloadStateKind.DOWNLOAD_ERROR, url=url, error=error)

    @classmethod
    def finish(cls) -> "DownloadState":
        return cls(DownloadStateKind.FINISH)

    @property
    def is_finished(self) -> bool:
        return self.kind is DownloadStateKind.FINISH
