"""
Request and response models for the game API.

Requests are turned into plain mappings with `to_payload()` before being
encoded. Responses are built from decoded mappings with `from_dict()`, which
raises DecodeError when a required field is missing or has the wrong type.
"""

from dataclasses import asdict, dataclass, field, replace
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
)

from starview.constants import (
    LOAD_DEVICE_TOKEN,
    LOAD_GRAPHICS_DEVICE_NAME,
    LOAD_PLATFORM_OS_VERSION,
    SIGNUP_DEVICE_ID,
    STORAGE_DIRECTORY_PATH,
)
from starview.exceptions import DecodeError

T = TypeVar("T")


def _require(data: Mapping[str, Any], key: str, expected: Any) -> Any:
    """
    Fetch `key` from `data` and check its type.

    Bools are rejected where integers are expected.
    """
    if not isinstance(data, Mapping):
        raise DecodeError(
            "Expected a map in response payload", details=type(data).__name__
        )
    if key not in data:
        raise DecodeError("Missing field in response payload", details=key)
    value = data[key]
    if expected is int and isinstance(value, bool):
        raise DecodeError("Field has the wrong type", details=f"{key}: bool")
    if not isinstance(value, expected):
        raise DecodeError(
            "Field has the wrong type", details=f"{key}: {type(value).__name__}"
        )
    return value


def _optional(data: Mapping[str, Any], key: str, expected: Any) -> Any:
    value = data.get(key)
    if value is None or not isinstance(value, expected):
        return None
    return value


# =============================================================================
# Envelope
# =============================================================================


@dataclass
class DataHeaders:
    """Session metadata the server attaches to every response."""

    short_udid: int
    viewer_id: int
    servertime: int
    result_code: int
    udid: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DataHeaders":
        return cls(
            short_udid=_require(data, "short_udid", int),
            viewer_id=_require(data, "viewer_id", int),
            servertime=_require(data, "servertime", int),
            result_code=_require(data, "result_code", int),
            udid=_optional(data, "udid", str),
        )


@dataclass
class ApiResponse(Generic[T]):
    """A decoded response: server session metadata plus the typed payload."""

    data_headers: DataHeaders
    data: T

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], parse_data: Callable[[Any], T]
    ) -> "ApiResponse[T]":
        return cls(
            data_headers=DataHeaders.from_dict(_require(data, "data_headers", dict)),
            data=parse_data(_require(data, "data", dict)),
        )


# =============================================================================
# Requests
# =============================================================================


@dataclass
class SignupRequest:
    """Fixed-shape account creation payload."""

    oaid: str = ""
    mac: str = ""
    media: str = "none"
    os_er: str = ""
    android_id: str = ""
    storage_directory_path: str = STORAGE_DIRECTORY_PATH
    channel_no: str = ""
    device_id: float = SIGNUP_DEVICE_ID
    termin_info: str = ""

    def to_payload(self) -> Dict[str, Any]:
        # The signup endpoint expects camelCase keys
        return {
            "oaid": self.oaid,
            "mac": self.mac,
            "media": self.media,
            "osEr": self.os_er,
            "androidId": self.android_id,
            "storageDirectoryPath": self.storage_directory_path,
            "channelNo": self.channel_no,
            "deviceId": self.device_id,
            "terminInfo": self.termin_info,
        }


@dataclass
class LoadRequest:
    viewer_id: int
    oaid: str = ""
    device_token: str = LOAD_DEVICE_TOKEN
    mac: str = ""
    imei: str = "none"
    keychain: int = 0
    graphics_device_name: str = LOAD_GRAPHICS_DEVICE_NAME
    storage_directory_path: str = STORAGE_DIRECTORY_PATH
    platform_os_version: str = LOAD_PLATFORM_OS_VERSION
    device_id: float = SIGNUP_DEVICE_ID

    @classmethod
    def from_viewer_id(cls, viewer_id: int) -> "LoadRequest":
        return cls(viewer_id=viewer_id, keychain=viewer_id)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "oaid": self.oaid,
            "viewer_id": self.viewer_id,
            "device_token": self.device_token,
            "mac": self.mac,
            "imei": self.imei,
            "keychain": self.keychain,
            "graphics_device_name": self.graphics_device_name,
            "storage_directory_path": self.storage_directory_path,
            "platform_os_version": self.platform_os_version,
            "device_id": self.device_id,
        }


@dataclass
class GetAssetPathRequest:
    target_asset_version: str
    viewer_id: int

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GetAssetVersionInfoRequest:
    asset_version: str
    viewer_id: int

    def to_payload(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# Responses
# =============================================================================


@dataclass
class SignupResponse:
    login_token: str
    new_account: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SignupResponse":
        return cls(
            login_token=_require(data, "login_token", str),
            new_account=_optional(data, "new_account", int) or 0,
        )


@dataclass
class LoadResponse:
    available_asset_version: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LoadResponse":
        return cls(
            available_asset_version=_require(data, "available_asset_version", str)
        )


@dataclass
class AssetPathsInfo:
    """Version bookkeeping for an asset manifest."""

    client_asset_version: str
    """Version the client holds; set to the target once the manifest is synced"""

    target_asset_version: str
    """Version the server is currently targeting"""

    eventual_target_asset_version: str
    """Version the server will eventually target"""

    is_initial: bool
    """Whether this manifest describes an initial install"""

    latest_maj_first_version: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetPathsInfo":
        return cls(
            client_asset_version=_require(data, "client_asset_version", str),
            target_asset_version=_require(data, "target_asset_version", str),
            eventual_target_asset_version=_require(
                data, "eventual_target_asset_version", str
            ),
            is_initial=_require(data, "is_initial", bool),
            latest_maj_first_version=_optional(data, "latest_maj_first_version", str)
            or "",
        )


@dataclass
class AssetPathArchive:
    """A single content-addressed archive on the CDN."""

    location: str
    """Absolute URL of the archive"""

    size: int
    """Declared size in bytes"""

    sha256: str
    """Hex digest of the archive bytes; the deduplication key"""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetPathArchive":
        return cls(
            location=_require(data, "location", str),
            size=_require(data, "size", int),
            sha256=_require(data, "sha256", str),
        )


def _parse_archives(items: Any) -> List[AssetPathArchive]:
    if not isinstance(items, list):
        raise DecodeError("Field has the wrong type", details="archive")
    return [AssetPathArchive.from_dict(item) for item in items]


def union_archives(*archive_lists: Iterable[AssetPathArchive]) -> List[AssetPathArchive]:
    """
    Concatenate archive lists, keeping only the first archive for each hash.

    Order of first appearance is preserved.
    """
    seen = set()
    merged: List[AssetPathArchive] = []
    for archives in archive_lists:
        for archive in archives:
            if archive.sha256 in seen:
                continue
            seen.add(archive.sha256)
            merged.append(archive)
    return merged


@dataclass
class AssetPathsFull:
    version: str
    archive: List[AssetPathArchive] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetPathsFull":
        return cls(
            version=_require(data, "version", str),
            archive=_parse_archives(data.get("archive", [])),
        )


@dataclass
class AssetPathDiff:
    """Archives needed to move from `original_version` to `version`."""

    version: str
    original_version: str
    archive: List[AssetPathArchive] = field(default_factory=list)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.version, self.original_version)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetPathDiff":
        return cls(
            version=_require(data, "version", str),
            original_version=_require(data, "original_version", str),
            archive=_parse_archives(data.get("archive", [])),
        )


@dataclass
class AssetPaths:
    """Full and differential archive listing for an asset version."""

    info: AssetPathsInfo
    full: AssetPathsFull
    diff: List[AssetPathDiff] = field(default_factory=list)
    asset_version_hash: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetPaths":
        raw_diff = data.get("diff") or []
        if not isinstance(raw_diff, list):
            raise DecodeError("Field has the wrong type", details="diff")
        return cls(
            info=AssetPathsInfo.from_dict(_require(data, "info", dict)),
            full=AssetPathsFull.from_dict(_require(data, "full", dict)),
            diff=[AssetPathDiff.from_dict(item) for item in raw_diff],
            asset_version_hash=_optional(data, "asset_version_hash", str) or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def iter_archives(self) -> Iterator[AssetPathArchive]:
        """Yield every archive: the full set first, then each diff in order."""
        yield from self.full.archive
        for diff in self.diff:
            yield from diff.archive

    def merge(self, other: "AssetPaths") -> "AssetPaths":
        """
        Combine two manifests for the same asset version on different platforms.

        Full archives are unioned by hash. Diffs are matched on
        (version, original_version) and their archives unioned by hash. The
        returned manifest keeps this manifest's info, full version and
        version hash. Neither input is modified.

        Returns:
            AssetPaths: A new manifest with no duplicate hashes per list.
        """
        diffs: Dict[Tuple[str, str], AssetPathDiff] = {}
        for diff in list(self.diff) + list(other.diff):
            existing = diffs.get(diff.key)
            if existing is None:
                diffs[diff.key] = replace(diff, archive=union_archives(diff.archive))
            else:
                existing.archive = union_archives(existing.archive, diff.archive)

        return AssetPaths(
            info=replace(self.info),
            full=AssetPathsFull(
                version=self.full.version,
                archive=union_archives(self.full.archive, other.full.archive),
            ),
            diff=list(diffs.values()),
            asset_version_hash=self.asset_version_hash,
        )


@dataclass
class AssetVersionInfo:
    """CDN location of an asset version for one device type."""

    base_url: str
    files_list: str
    total_size: int
    delayed_assets_size: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssetVersionInfo":
        return cls(
            base_url=_require(data, "base_url", str),
            files_list=_require(data, "files_list", str),
            total_size=_require(data, "total_size", int),
            delayed_assets_size=_require(data, "delayed_assets_size", int),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
