"""
Persistent fetch cache.

The cache records the client session, the last resolved asset manifest and
version info, and the hashes of archives already downloaded. It is stored as a
single JSON file and always replaced atomically.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from starview.enums import DeviceType
from starview.exceptions import CacheError, DecodeError
from starview.files import atomic_write_json
from starview.log_utils import logger
from starview.net.client import SessionInfo
from starview.net.models import AssetPaths, AssetVersionInfo


@dataclass
class FetchCache:
    """In-memory form of the fetch cache file."""

    udid: str
    short_udid: Optional[int] = None
    login_token: Optional[str] = None
    viewer_id: Optional[int] = None
    device_type: Optional[DeviceType] = None
    """Device type the cached manifest was resolved for"""

    version_info: List[AssetVersionInfo] = field(default_factory=list)
    asset_paths: Optional[AssetPaths] = None
    downloaded_asset_hashes: Set[str] = field(default_factory=set)
    """sha256 digests of archives confirmed present in the last download pass"""

    @classmethod
    def from_session(cls, session_info: SessionInfo) -> "FetchCache":
        return cls(
            udid=session_info.udid,
            short_udid=session_info.short_udid,
            login_token=session_info.login_token,
            viewer_id=session_info.viewer_id,
        )

    def session_info(self) -> SessionInfo:
        return SessionInfo(
            udid=self.udid,
            short_udid=self.short_udid,
            login_token=self.login_token,
            viewer_id=self.viewer_id,
        )

    def update_session(self, session_info: SessionInfo) -> None:
        self.udid = session_info.udid
        self.short_udid = session_info.short_udid
        self.login_token = session_info.login_token
        self.viewer_id = session_info.viewer_id

    def is_valid_for(self, asset_version: str, device_type: DeviceType) -> bool:
        """
        Check whether the cached manifest can be reused.

        The manifest must have been synced to `asset_version` and resolved for
        the same device type the client is configured with now.
        """
        if self.asset_paths is None:
            return False
        return (
            self.asset_paths.info.client_asset_version == asset_version
            and self.device_type is device_type
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "udid": self.udid,
            "short_udid": self.short_udid,
            "login_token": self.login_token,
            "viewer_id": self.viewer_id,
            "device_type": self.device_type.value if self.device_type else None,
            "version_info": [info.to_dict() for info in self.version_info],
            "asset_paths": self.asset_paths.to_dict() if self.asset_paths else None,
            "downloaded_asset_hashes": sorted(self.downloaded_asset_hashes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FetchCache":
        """
        Build a cache from its JSON form.

        Raises:
            CacheError: If the record is not a mapping or a field is malformed.
        """
        if not isinstance(data, dict):
            raise CacheError("Cache record is not a JSON object")

        udid = data.get("udid")
        if not isinstance(udid, str) or not udid:
            raise CacheError("Cache record has no udid")

        try:
            device_type = (
                DeviceType(data["device_type"]) if data.get("device_type") else None
            )
            raw_asset_paths = data.get("asset_paths")
            return cls(
                udid=udid,
                short_udid=data.get("short_udid"),
                login_token=data.get("login_token"),
                viewer_id=data.get("viewer_id"),
                device_type=device_type,
                version_info=[
                    AssetVersionInfo.from_dict(item)
                    for item in data.get("version_info") or []
                ],
                asset_paths=(
                    AssetPaths.from_dict(raw_asset_paths) if raw_asset_paths else None
                ),
                downloaded_asset_hashes=set(data.get("downloaded_asset_hashes") or []),
            )
        except (DecodeError, ValueError, TypeError) as e:
            raise CacheError("Cache record is malformed", details=str(e)) from e

    @classmethod
    def load(cls, path: Union[str, Path]) -> "FetchCache":
        """
        Read the cache file at `path`.

        Raises:
            CacheError: If the file is missing, unreadable or not a valid record.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise CacheError("Cache file not found", path=str(path)) from e
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CacheError(
                "Could not read cache file", path=str(path), details=str(e)
            ) from e

        try:
            return cls.from_dict(data)
        except CacheError as e:
            e.path = str(path)
            raise

    @classmethod
    def load_or_none(cls, path: Union[str, Path]) -> Optional["FetchCache"]:
        """Read the cache file, returning None when it is missing or corrupt."""
        try:
            return cls.load(path)
        except CacheError as e:
            if Path(path).exists():
                logger.warning(f"Ignoring unusable cache file: {e}")
            else:
                logger.debug(f"No cache file at {path}; starting fresh")
            return None

    def write(self, path: Union[str, Path]) -> None:
        """
        Atomically replace the cache file at `path` with this record.

        Raises:
            CacheError: If the file cannot be written. The previous file, if
                any, is left intact.
        """
        try:
            atomic_write_json(path, self.to_dict())
        except (OSError, TypeError, ValueError) as e:
            raise CacheError(
                "Could not write cache file", path=str(path), details=str(e)
            ) from e
        logger.debug(f"Wrote fetch cache to {path}")
