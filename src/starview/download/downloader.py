"""
Bounded-concurrency bulk downloader.

The Downloader takes an explicit list of URLs, derives a destination for each
one under an output directory, and downloads them with at most `concurrency`
transfers in flight. Every unit is retried with exponential backoff; a unit
that exhausts its retries is reported as an error without affecting the
others. Progress is published on `Downloader.states`.
"""

import asyncio
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

import aiofiles  # type: ignore[import-untyped]
import aiohttp
from aiohttp import ClientSession, ClientTimeout, TCPConnector

from starview.constants import (
    BYTES_PER_MEGABYTE,
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DOWNLOAD_TIMEOUT,
    FILE_SIZE_MB_LOGGING_THRESHOLD,
    HTTP_STATUS_SUCCESS_MAX,
    HTTP_STATUS_SUCCESS_MIN,
)
from starview.exceptions import DownloadError
from starview.log_utils import logger
from starview.state_channel import StateChannel

from .config import DownloadConfig, Pathish
from .state import DownloadState


@dataclass
class DownloadResult:
    """Outcome of a Downloader run."""

    downloaded_urls: List[str] = field(default_factory=list)
    """URLs whose files were written successfully"""

    errors: List[DownloadError] = field(default_factory=list)
    """One error per URL that exhausted its retries"""


def get_url_out_path(url: str, out_dir: Pathish, strip_prefix: Optional[str] = None) -> Path:
    """
    Calculate where the file downloaded from `url` should be saved.

    The URL's path has `strip_prefix` removed when it starts with it, then one
    leading "/" removed, and the remainder is joined onto `out_dir`.

    Example:
        >>> get_url_out_path(
        ...     "https://host/patch/gf/upload_assets/x/y.bin",
        ...     "out",
        ...     "/patch/gf/upload_assets",
        ... )
        PosixPath('out/x/y.bin')
    """
    url_path = urlsplit(url).path

    if strip_prefix and url_path.startswith(strip_prefix):
        url_path = url_path[len(strip_prefix) :]
    if url_path.startswith("/"):
        url_path = url_path[1:]

    return Path(out_dir) / url_path


def _is_within(root: Path, path: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


class Downloader:
    """
    Downloads every URL of a DownloadConfig under its output directory.

    Usage:
        downloader = Downloader(DownloadConfig(urls=urls, out_path="out"))
        downloader.states.subscribe(print)
        result = await downloader.download()
    """

    def __init__(
        self, config: DownloadConfig, session: Optional[ClientSession] = None
    ) -> None:
        """
        Parameters:
            config (DownloadConfig): What to download and how.
            session (Optional[ClientSession]): Session to reuse. When omitted the
                downloader creates its own and closes it after `download()`.
        """
        self.config = config
        self.states: StateChannel[DownloadState] = StateChannel(
            DownloadState.not_started()
        )
        self._session = session
        self._owns_session = session is None

    async def _ensure_session(self) -> ClientSession:
        if self._session is None or getattr(self._session, "closed", False) is True:
            connector = TCPConnector(limit=self.config.concurrency)
            timeout = ClientTimeout(total=DEFAULT_DOWNLOAD_TIMEOUT)
            self._session = ClientSession(connector=connector, timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the downloader's own aiohttp session, if active."""
        if (
            self._owns_session
            and self._session is not None
            and getattr(self._session, "closed", False) is not True
        ):
            close_result = self._session.close()
            if asyncio.iscoroutine(close_result):
                await close_result
            self._session = None

    async def _cleanup_temp_file(self, temp_path: Optional[Path]) -> None:
        if temp_path is None:
            return
        try:
            if temp_path.exists():
                temp_path.unlink()
        except OSError as e:
            logger.debug(f"Error cleaning up temp file {temp_path}: {e}")

    async def download_file(self, url: str, out_path: Path) -> int:
        """
        Make one attempt at downloading `url` to `out_path`.

        The body is streamed into a uniquely named temporary file next to the
        destination, which then replaces any existing file.

        Returns:
            int: Number of bytes written.

        Raises:
            DownloadError: On a non-2xx status, a network failure or a local
                write failure.
        """
        temp_path: Optional[Path] = None
        written = 0

        try:
            session = await self._ensure_session()
            async with session.get(url) as response:
                if not (
                    HTTP_STATUS_SUCCESS_MIN <= response.status <= HTTP_STATUS_SUCCESS_MAX
                ):
                    raise DownloadError(
                        f"HTTP error {response.status}",
                        url=url,
                        status_code=response.status,
                    )

                out_path.parent.mkdir(parents=True, exist_ok=True)
                fd, temp_name = tempfile.mkstemp(
                    prefix=f"{out_path.name}.", suffix=".tmp", dir=str(out_path.parent)
                )
                os.close(fd)
                temp_path = Path(temp_name)
                async with aiofiles.open(temp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(DEFAULT_CHUNK_SIZE):
                        await f.write(chunk)
                        written += len(chunk)

            os.replace(temp_path, out_path)
        except DownloadError:
            await self._cleanup_temp_file(temp_path)
            raise
        except aiohttp.ClientError as e:
            await self._cleanup_temp_file(temp_path)
            raise DownloadError(f"Network error: {e}", url=url) from e
        except asyncio.TimeoutError as e:
            await self._cleanup_temp_file(temp_path)
            raise DownloadError("Download timed out", url=url) from e
        except OSError as e:
            await self._cleanup_temp_file(temp_path)
            raise DownloadError(f"Filesystem error: {e}", url=url) from e
        except Exception as e:
            await self._cleanup_temp_file(temp_path)
            raise DownloadError(f"Unexpected error: {e}", url=url) from e

        size_mb = written / BYTES_PER_MEGABYTE
        if size_mb >= FILE_SIZE_MB_LOGGING_THRESHOLD:
            logger.debug(f"Downloaded: {out_path.name} ({size_mb:.1f} MB)")
        else:
            logger.debug(f"Downloaded: {out_path.name} ({written} bytes)")
        return written

    async def download_with_retry(self, url: str, out_path: Path) -> int:
        """
        Download `url`, retrying up to `retry_count` more times on failure.

        Failed attempt k waits `retry_delay * 2**(k-1)` seconds before the next.

        Returns:
            int: Number of bytes written by the successful attempt.

        Raises:
            DownloadError: The last attempt's error once retries are exhausted.
        """
        attempts = self.config.retry_count + 1
        delay = self.config.retry_delay

        for attempt in range(attempts):
            try:
                return await self.download_file(url, out_path)
            except DownloadError as e:
                e.retry_count = attempt
                if attempt == attempts - 1:
                    logger.error(
                        f"Download failed permanently after {attempts} attempts for {url}: {e.message}"
                    )
                    raise
                logger.warning(
                    f"Download attempt {attempt + 1}/{attempts} failed for {url}, "
                    f"retrying in {delay:.1f}s: {e.message}"
                )

            await asyncio.sleep(delay)
            delay *= DEFAULT_BACKOFF_FACTOR

        raise DownloadError("Download failed without an error context", url=url)

    async def _download_unit(
        self, url: str, out_path: Path, semaphore: asyncio.Semaphore
    ) -> Tuple[str, Optional[DownloadError]]:
        if not _is_within(self.config.out_path, out_path):
            error = DownloadError(
                "Refusing to write outside the output directory",
                url=url,
                is_retryable=False,
                details=str(out_path),
            )
            logger.error(str(error))
            self.states.publish(DownloadState.download_error(url, str(error)))
            return url, error

        async with semaphore:
            try:
                size = await self.download_with_retry(url, out_path)
            except DownloadError as e:
                self.states.publish(DownloadState.download_error(url, str(e)))
                return url, e

        self.states.publish(DownloadState.file_download(size, url))
        return url, None

    async def download(self) -> DownloadResult:
        """
        Download all configured URLs.

        Publishes DOWNLOAD_START with the number of files, one FILE_DOWNLOAD or
        DOWNLOAD_ERROR per file in completion order, and FINISH last.

        Returns:
            DownloadResult: Successful URLs and the errors of the failed ones.
        """
        units: List[Tuple[str, Path]] = [
            (
                url,
                get_url_out_path(url, self.config.out_path, self.config.url_strip_prefix),
            )
            for url in self.config.urls
        ]

        self.states.publish(DownloadState.download_start(len(units)))
        semaphore = asyncio.Semaphore(self.config.concurrency)

        try:
            outcomes = await asyncio.gather(
                *(self._download_unit(url, path, semaphore) for url, path in units)
            )
        finally:
            await self.close()

        result = DownloadResult()
        for url, error in outcomes:
            if error is None:
                result.downloaded_urls.append(url)
            else:
                result.errors.append(error)

        logger.info(
            f"Downloaded {len(result.downloaded_urls)} of {len(units)} files"
            + (f", {len(result.errors)} failed" if result.errors else "")
        )
        self.states.publish(DownloadState.finish())
        return result
