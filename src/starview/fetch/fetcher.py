"""
Fetch orchestration.

The Fetcher owns the API client and the fetch cache. It resolves the current
asset manifest (reusing the cached one when it is still valid), downloads
asset archives that were not downloaded before, and downloads the per-device
file lists. Progress is published on `Fetcher.states`.
"""

from pathlib import Path
from typing import (
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Set,
    Tuple,
    TypeVar,
    Union,
)

from aiohttp import ClientSession

from starview.constants import (
    DEFAULT_CONCURRENCY,
    DOWNLOAD_FILES_LIST_URL_STRIP_PREFIX,
    DOWNLOAD_URL_STRIP_PREFIX,
    FILES_LIST_CONCURRENCY,
    FILES_LIST_MAX_COUNT,
    HTTP_STATUS_CLIENT_ERROR_MAX,
    HTTP_STATUS_CLIENT_ERROR_MIN,
)
from starview.download import Downloader, DownloadConfig, DownloadResult, DownloadState
from starview.enums import AssetSize
from starview.exceptions import InvalidRequestError, OutputPathError
from starview.files import atomic_write_json
from starview.log_utils import logger
from starview.net.client import GameAPIClient, gather_all
from starview.net.models import AssetPaths, AssetVersionInfo
from starview.state_channel import StateChannel

from .cache import FetchCache
from .config import FetchConfig
from .state import FetchOperation, FetchPhase, FetchState

AssetInfo = Tuple[List[AssetVersionInfo], AssetPaths]
T = TypeVar("T")


def validate_dir(dir_path: Union[str, Path]) -> Path:
    """
    Make sure `dir_path` is a usable output directory, creating it if missing.

    Raises:
        OutputPathError: If the path exists and is not a directory.
        OSError: If the directory cannot be created.
    """
    dir_path = Path(dir_path)
    if dir_path.is_dir():
        return dir_path
    if dir_path.exists():
        raise OutputPathError("Output path is not a directory", path=str(dir_path))
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


class Fetcher:
    """
    Resolves and downloads the game's assets.

    Example:
        fetcher = await Fetcher.create(FetchConfig(device_type=DeviceType.ALL))
        fetcher.states.subscribe(print)
        async with fetcher:
            await fetcher.download_assets("assets", concurrency=5)
    """

    def __init__(
        self,
        config: FetchConfig,
        client: GameAPIClient,
        cache: FetchCache,
        download_session: Optional[ClientSession] = None,
    ) -> None:
        self.config = config
        self.client = client
        self.cache = cache
        self.download_session = download_session
        self.cache_path = Path(config.cache_path)
        self.states: StateChannel[FetchState] = StateChannel(FetchState.not_started())
        self._session_renewed = False

    @classmethod
    async def create(
        cls,
        config: FetchConfig,
        client: Optional[GameAPIClient] = None,
        download_session: Optional[ClientSession] = None,
    ) -> "Fetcher":
        """
        Build a Fetcher from the cache at `config.cache_path` and sign up.

        An unreadable cache is treated as absent. When no session was cached a
        new one is registered and written to the cache right away.

        Parameters:
            config (FetchConfig): Fetcher configuration.
            client (Optional[GameAPIClient]): Client to use instead of one built
                from the cached session.
            download_session (Optional[ClientSession]): Session shared by all
                downloads. Each download pass opens its own when omitted.
        """
        cache = FetchCache.load_or_none(config.cache_path)

        if client is None:
            if cache is not None:
                client = GameAPIClient.from_session(
                    cache.session_info(),
                    api_host=config.api_host,
                    device_type=config.device_type,
                )
            else:
                client = GameAPIClient(
                    api_host=config.api_host, device_type=config.device_type
                )

        if cache is None:
            cache = FetchCache.from_session(client.session_info())

        fetcher = cls(config, client, cache, download_session)
        try:
            signup_response = await client.signup()
            if signup_response is not None:
                fetcher.cache.update_session(client.session_info())
                fetcher.write_cache()
        except BaseException:
            await client.close()
            raise
        return fetcher

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    def write_cache(self) -> None:
        self.cache.write(self.cache_path)

    def _is_rejected_session(self, error: InvalidRequestError) -> bool:
        status = error.status_code
        return (
            status is not None
            and HTTP_STATUS_CLIENT_ERROR_MIN <= status <= HTTP_STATUS_CLIENT_ERROR_MAX
            and self.client.is_authenticated
            and not self._session_renewed
        )

    async def _renew_session(self) -> None:
        self._session_renewed = True
        self.client.clear_session()
        await self.client.signup()
        self.cache.update_session(self.client.session_info())
        self.write_cache()

    async def _with_session_renewal(self, call: Callable[[], Awaitable[T]]) -> T:
        """
        Await `call()`, signing up again once if the server rejects the session.

        A login token persisted in the cache can be invalidated server side. The
        first 4xx answer clears it, registers a new session, writes that to the
        cache and retries `call` a single time; later rejections propagate.
        """
        try:
            return await call()
        except InvalidRequestError as e:
            if not self._is_rejected_session(e):
                raise
            logger.warning(f"Session rejected by the server ({e.message}), signing up again")
        await self._renew_session()
        return await call()

    def _publish(
        self,
        operation: FetchOperation,
        phase: FetchPhase,
        total: Optional[int] = None,
        download: Optional[DownloadState] = None,
    ) -> None:
        self.states.publish(FetchState(operation, phase, total, download))

    # -------------------------------------------------------------------------
    # Asset info
    # -------------------------------------------------------------------------

    async def _get_available_asset_version(self, operation: FetchOperation) -> str:
        if operation is FetchOperation.ASSET_INFO:
            self._publish(operation, FetchPhase.GET_ASSET_VERSION)
        profile = await self._with_session_renewal(self.client.load)
        if profile is None:
            raise InvalidRequestError("could not load player data")
        return profile.available_asset_version

    async def _resolve_asset_info(
        self,
        asset_version: str,
        operation: FetchOperation,
        asset_size: AssetSize = AssetSize.FULL,
    ) -> AssetInfo:
        # Only full manifests are cached
        use_cache = asset_size is AssetSize.FULL
        cached_paths = self.cache.asset_paths
        if (
            use_cache
            and cached_paths is not None
            and self.cache.is_valid_for(asset_version, self.client.device_type)
        ):
            logger.debug(f"Using cached asset info for version {asset_version}")
            if operation is FetchOperation.ASSET_INFO:
                self._publish(operation, FetchPhase.FINISH)
            return self.cache.version_info, cached_paths

        if operation is FetchOperation.ASSET_INFO:
            self._publish(operation, FetchPhase.GET_ASSET_INFO)
        logger.debug(f"Resolving asset info for version {asset_version}")

        asset_paths, version_info = await self._with_session_renewal(
            lambda: gather_all(
                self.client.get_asset_path(asset_version, asset_size),
                self.client.get_asset_version_info(asset_version),
            )
        )
        if asset_paths is None:
            raise InvalidRequestError("could not get asset paths or asset version info")

        asset_paths.info.client_asset_version = asset_paths.info.target_asset_version

        if use_cache:
            self.cache.asset_paths = asset_paths
            self.cache.version_info = version_info
            self.cache.device_type = self.client.device_type
            self.write_cache()

        if operation is FetchOperation.ASSET_INFO:
            self._publish(operation, FetchPhase.FINISH)
        return version_info, asset_paths

    async def get_asset_info(
        self, asset_version: str, asset_size: AssetSize = AssetSize.FULL
    ) -> AssetInfo:
        """
        Resolve version info and asset paths for `asset_version`.

        The cached values are returned when the cached manifest was synced to
        `asset_version` for the current device type. Otherwise both are fetched
        concurrently and the cache is updated and written. Shortened manifests
        are always fetched and never cached.

        Returns:
            Tuple[List[AssetVersionInfo], AssetPaths]: Version info, android
            first, and the (merged) manifest.

        Raises:
            InvalidRequestError: If the server returns no manifest.
            CacheError: If the updated cache cannot be written.
        """
        return await self._resolve_asset_info(
            asset_version, FetchOperation.ASSET_INFO, asset_size
        )

    async def get_latest_asset_info(
        self, asset_size: AssetSize = AssetSize.FULL
    ) -> AssetInfo:
        """Resolve asset info for the version the player profile advertises."""
        asset_version = await self._get_available_asset_version(
            FetchOperation.ASSET_INFO
        )
        return await self.get_asset_info(asset_version, asset_size)

    async def _asset_info_for(
        self, operation: FetchOperation, asset_version: Optional[str]
    ) -> AssetInfo:
        if asset_version is None:
            asset_version = await self._get_available_asset_version(operation)
        return await self._resolve_asset_info(asset_version, operation)

    # -------------------------------------------------------------------------
    # Downloads
    # -------------------------------------------------------------------------

    async def _run_downloader(
        self, operation: FetchOperation, download_config: DownloadConfig
    ) -> DownloadResult:
        downloader = Downloader(download_config, session=self.download_session)

        def _bridge(state: DownloadState) -> None:
            self._publish(operation, FetchPhase.DOWNLOAD, download=state)

        unsubscribe = downloader.states.subscribe(_bridge)
        try:
            return await downloader.download()
        finally:
            unsubscribe()

    async def download_assets(
        self,
        out_path: Union[str, Path],
        concurrency: int = DEFAULT_CONCURRENCY,
        asset_version: Optional[str] = None,
    ) -> DownloadResult:
        """
        Download every archive of the current manifest not downloaded before.

        Archives whose hash is in the cached hash set are skipped. After the
        pass the hash set becomes the skipped hashes plus the hashes of the
        archives that were written successfully, so failed archives are tried
        again next time.

        Parameters:
            out_path (Union[str, Path]): Directory to download into.
            concurrency (int): Maximum number of simultaneous downloads.
            asset_version (Optional[str]): Version to download instead of the
                one the player profile advertises.

        Raises:
            OutputPathError: If `out_path` exists and is not a directory.
        """
        operation = FetchOperation.DOWNLOAD_ASSETS
        out_dir = validate_dir(out_path)

        self._publish(operation, FetchPhase.FETCH_ASSET_INFO)
        _, asset_paths = await self._asset_info_for(operation, asset_version)

        previous_hashes = self.cache.downloaded_asset_hashes
        new_hashes: Set[str] = set()
        url_hashes: Dict[str, str] = {}
        queued: Set[str] = set()
        urls: List[str] = []
        total_bytes = 0

        for archive in asset_paths.iter_archives():
            if archive.sha256 in previous_hashes:
                new_hashes.add(archive.sha256)
                continue
            if archive.sha256 in queued:
                continue
            queued.add(archive.sha256)
            url_hashes[archive.location] = archive.sha256
            urls.append(archive.location)
            total_bytes += archive.size

        logger.info(
            f"{len(urls)} archives to download ({total_bytes} bytes), "
            f"{len(new_hashes)} already downloaded"
        )
        self._publish(operation, FetchPhase.DOWNLOAD_START, total=total_bytes)

        result = await self._run_downloader(
            operation,
            DownloadConfig(
                urls=urls,
                out_path=out_dir,
                concurrency=concurrency,
                retry_count=self.config.retry_count,
                retry_delay=self.config.retry_delay,
                url_strip_prefix=DOWNLOAD_URL_STRIP_PREFIX,
            ),
        )

        for url in result.downloaded_urls:
            sha256 = url_hashes.get(url)
            if sha256 is not None:
                new_hashes.add(sha256)

        self.cache.downloaded_asset_hashes = new_hashes
        self.write_cache()

        self._publish(operation, FetchPhase.FINISH)
        return result

    async def download_files_list(
        self, out_path: Union[str, Path], asset_version: Optional[str] = None
    ) -> DownloadResult:
        """
        Download the file lists of the current version info, one per device.

        The hash set in the cache is left untouched.

        Raises:
            OutputPathError: If `out_path` exists and is not a directory.
        """
        operation = FetchOperation.DOWNLOAD_FILES_LIST
        out_dir = validate_dir(out_path)

        self._publish(operation, FetchPhase.FETCH_ASSET_INFO)
        version_info, _ = await self._asset_info_for(operation, asset_version)

        urls = [info.files_list for info in version_info[:FILES_LIST_MAX_COUNT]]
        self._publish(operation, FetchPhase.DOWNLOAD_START, total=len(urls))

        result = await self._run_downloader(
            operation,
            DownloadConfig(
                urls=urls,
                out_path=out_dir,
                concurrency=FILES_LIST_CONCURRENCY,
                retry_count=self.config.retry_count,
                retry_delay=self.config.retry_delay,
                url_strip_prefix=DOWNLOAD_FILES_LIST_URL_STRIP_PREFIX,
            ),
        )

        self._publish(operation, FetchPhase.FINISH)
        return result

    @staticmethod
    def write_asset_paths(out_file: Union[str, Path], asset_paths: AssetPaths) -> None:
        """Write `asset_paths` to `out_file` as pretty-printed JSON."""
        atomic_write_json(out_file, asset_paths.to_dict())
        logger.debug(f"Wrote asset paths to {out_file}")
