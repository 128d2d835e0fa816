"""
Bulk file download subsystem.

Core Components:
- config: DownloadConfig and value clamping helpers
- state: Progress states published while downloading
- downloader: Concurrent, retrying Downloader
"""

from .config import DownloadConfig
from .downloader import Downloader, DownloadResult, get_url_out_path
from .state import DownloadState, DownloadStateKind

__all__ = [
    "DownloadConfig",
    "Downloader",
    "DownloadResult",
    "DownloadState",
    "DownloadStateKind",
    "get_url_out_path",
]
