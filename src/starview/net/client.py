"""
Async client for the game API.

Every call is a signed POST whose body is a base64 MessagePack envelope. The
client keeps the session identity (udid, short udid, login token, viewer id)
and exposes typed operations. Calls that need a session return None until a
viewer id exists.

Device type branching lives in the strategies at the bottom of this module:
a single concrete device makes one call, `DeviceType.ALL` makes one call per
concrete device concurrently and combines the results.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, TypeVar
from urllib.parse import urljoin, urlsplit
from uuid import uuid4

import aiohttp
from aiohttp import ClientSession, ClientTimeout, TCPConnector

from starview.constants import (
    API_HOST,
    ASSET_GET_PATH,
    ASSET_VERSION_INFO,
    DEFAULT_REQUEST_TIMEOUT,
    HEADER_ASSET_SIZE,
    HEADER_DEVICE,
    HEADER_PARAM,
    HTTP_STATUS_SUCCESS_MAX,
    HTTP_STATUS_SUCCESS_MIN,
    LOAD,
    TOOL_SIGNUP,
)
from starview.enums import AssetSize, DeviceType
from starview.exceptions import InvalidRequestError, TransportError
from starview.log_utils import logger

from .crypto import decode_base64_msgpack, encode_base64_msgpack, get_request_checksum
from .headers import Headers
from .models import (
    ApiResponse,
    AssetPaths,
    AssetVersionInfo,
    GetAssetPathRequest,
    GetAssetVersionInfoRequest,
    LoadRequest,
    LoadResponse,
    SignupRequest,
    SignupResponse,
)

T = TypeVar("T")


def generate_udid() -> str:
    """Create a fresh client identity: an uppercase UUID4 string."""
    return str(uuid4()).upper()


@dataclass
class SessionInfo:
    """Identity and server-assigned session handles of a client."""

    udid: str
    short_udid: Optional[int] = None
    login_token: Optional[str] = None
    viewer_id: Optional[int] = None


class GameAPIClient:
    """
    Asynchronous client for the game's API using aiohttp.

    Example:
        async with GameAPIClient(device_type=DeviceType.ALL) as client:
            await client.signup()
            profile = await client.load()
            asset_paths = await client.get_asset_path(
                profile.available_asset_version, AssetSize.FULL
            )
    """

    def __init__(
        self,
        udid: Optional[str] = None,
        *,
        short_udid: Optional[int] = None,
        login_token: Optional[str] = None,
        viewer_id: Optional[int] = None,
        api_host: Optional[str] = None,
        device_type: DeviceType = DeviceType.ANDROID,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """
        Initialize the client, generating a udid when none is given.

        Parameters:
            udid (Optional[str]): Persisted client identity to reuse.
            short_udid (Optional[int]): Server-assigned account id from a previous signup.
            login_token (Optional[str]): Login token from a previous signup.
            viewer_id (Optional[int]): Session handle from a previous signup.
            api_host (Optional[str]): Base API URL; defaults to the production host.
            device_type (DeviceType): Device type used for asset requests.
            timeout (float): Total timeout for a single API call, in seconds.
        """
        self.udid = udid or generate_udid()
        self.device_type = device_type
        self.api_host = api_host or API_HOST
        if not self.api_host.endswith("/"):
            self.api_host += "/"
        self.timeout = ClientTimeout(total=timeout)

        self._headers = Headers(self.udid)
        self._short_udid: Optional[int] = None
        self._login_token: Optional[str] = None
        self._viewer_id: Optional[int] = viewer_id
        self._session: Optional[ClientSession] = None
        self._strategy = strategy_for(device_type)

        if short_udid is not None:
            self._set_short_udid(short_udid)
        if login_token is not None:
            self._set_login_token(login_token)

    @classmethod
    def from_session(
        cls, session_info: SessionInfo, **kwargs: Any
    ) -> "GameAPIClient":
        return cls(
            session_info.udid,
            short_udid=session_info.short_udid,
            login_token=session_info.login_token,
            viewer_id=session_info.viewer_id,
            **kwargs,
        )

    @property
    def short_udid(self) -> Optional[int]:
        return self._short_udid

    @property
    def login_token(self) -> Optional[str]:
        return self._login_token

    @property
    def viewer_id(self) -> Optional[int]:
        return self._viewer_id

    @property
    def is_authenticated(self) -> bool:
        return self._login_token is not None and self._viewer_id is not None

    def session_info(self) -> SessionInfo:
        return SessionInfo(
            udid=self.udid,
            short_udid=self._short_udid,
            login_token=self._login_token,
            viewer_id=self._viewer_id,
        )

    async def __aenter__(self) -> "GameAPIClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> ClientSession:
        """
        Ensure an aiohttp session exists, creating one if needed.

        Returns:
            ClientSession: The active aiohttp session.
        """
        if self._session is None or self._session.closed:
            connector = TCPConnector(limit_per_host=4, enable_cleanup_closed=True)
            self._session = ClientSession(connector=connector, timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        """Close the client session and release resources."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def _set_login_token(self, login_token: str) -> None:
        self._headers.set_login_token(login_token)
        self._login_token = login_token

    def _set_short_udid(self, short_udid: int) -> None:
        self._headers.set_short_udid(short_udid)
        self._short_udid = short_udid

    def clear_session(self) -> None:
        """Forget the server-assigned session so the next signup() registers again."""
        self._headers.clear_session()
        self._short_udid = None
        self._login_token = None
        self._viewer_id = None

    def _url(self, endpoint: str) -> str:
        return urljoin(self.api_host, endpoint)

    def _signed_headers(
        self, url: str, body: str, extra: Optional[Dict[str, str]] = None
    ) -> Dict[str, str]:
        viewer_id = "" if self._viewer_id is None else str(self._viewer_id)
        checksum = get_request_checksum(self.udid, viewer_id, urlsplit(url).path, body)
        headers = {HEADER_PARAM: checksum}
        if extra:
            headers.update(extra)
        return self._headers.build(headers)

    async def _post(
        self,
        endpoint: str,
        payload: Dict[str, Any],
        parse_data: Callable[[Any], T],
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> ApiResponse[T]:
        """
        Sign and send a request, then decode the response envelope.

        Raises:
            InvalidRequestError: If the server answers with a non-2xx status.
            TransportError: If the request fails before a response arrives.
            DecodeError: If the response envelope is malformed.
        """
        url = self._url(endpoint)
        body = encode_base64_msgpack(payload)
        headers = self._signed_headers(url, body, extra_headers)
        session = await self._ensure_session()

        logger.debug(f"POST {url}")
        try:
            async with session.post(url, data=body, headers=headers) as response:
                if not (
                    HTTP_STATUS_SUCCESS_MIN <= response.status <= HTTP_STATUS_SUCCESS_MAX
                ):
                    raise InvalidRequestError(
                        f"HTTP status {response.status} {response.reason or ''}".strip(),
                        endpoint=endpoint,
                        status_code=response.status,
                    )
                text = await response.text()
        except aiohttp.ClientError as e:
            raise TransportError(
                f"Request to {endpoint} failed", endpoint=endpoint, details=str(e)
            ) from e
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Request to {endpoint} timed out", endpoint=endpoint
            ) from e

        return ApiResponse.from_dict(decode_base64_msgpack(text), parse_data)

    async def signup(self) -> Optional[SignupResponse]:
        """
        Create a session for this client's udid.

        Returns:
            Optional[SignupResponse]: The server's response, or None when the
            client already holds a login token.
        """
        if self._login_token is not None:
            logger.debug("Already signed up; skipping signup")
            return None

        response = await self._post(
            TOOL_SIGNUP, SignupRequest().to_payload(), SignupResponse.from_dict
        )
        self._set_login_token(response.data.login_token)
        self._set_short_udid(response.data_headers.short_udid)
        self._viewer_id = response.data_headers.viewer_id
        logger.debug(f"Signed up as viewer {self._viewer_id}")
        return response.data

    async def load(self) -> Optional[LoadResponse]:
        """Load the signed in user's profile, or return None without a session."""
        if self._viewer_id is None:
            return None

        response = await self._post(
            LOAD,
            LoadRequest.from_viewer_id(self._viewer_id).to_payload(),
            LoadResponse.from_dict,
        )
        return response.data

    async def get_asset_path_for_device(
        self,
        target_asset_version: str,
        asset_size: AssetSize,
        device_type: DeviceType,
    ) -> Optional[AssetPaths]:
        """Fetch the asset manifest for one concrete device type."""
        if self._viewer_id is None:
            return None

        response = await self._post(
            ASSET_GET_PATH,
            GetAssetPathRequest(target_asset_version, self._viewer_id).to_payload(),
            AssetPaths.from_dict,
            {
                HEADER_ASSET_SIZE: asset_size.wire_value,
                HEADER_DEVICE: device_type.wire_value,
            },
        )
        return response.data

    async def get_asset_version_info_for_device(
        self, asset_version: str, device_type: DeviceType
    ) -> Optional[AssetVersionInfo]:
        """Fetch CDN version info for one concrete device type."""
        if self._viewer_id is None:
            return None

        response = await self._post(
            ASSET_VERSION_INFO,
            GetAssetVersionInfoRequest(asset_version, self._viewer_id).to_payload(),
            AssetVersionInfo.from_dict,
            {HEADER_DEVICE: device_type.wire_value},
        )
        return response.data

    async def get_asset_path(
        self, target_asset_version: str, asset_size: AssetSize
    ) -> Optional[AssetPaths]:
        """
        Fetch asset paths for this client's device type.

        With `DeviceType.ALL` both platforms are queried concurrently and the
        manifests are merged; a failure of either call fails the whole request.

        Returns:
            Optional[AssetPaths]: The (merged) manifest, or None without a session.
        """
        return await self._strategy.get_asset_path(
            self, target_asset_version, asset_size
        )

    async def get_asset_version_info(
        self, asset_version: str
    ) -> List[AssetVersionInfo]:
        """
        Fetch CDN version info for this client's device type.

        Returns:
            List[AssetVersionInfo]: One entry per concrete device type, android
            first; empty without a session.
        """
        return await self._strategy.get_asset_version_info(self, asset_version)


# =============================================================================
# Device type strategies
# =============================================================================


async def gather_all(*aws: Any) -> List[Any]:
    """
    Await all coroutines concurrently and re-raise the first failure.

    Unlike a bare `asyncio.gather`, every call has finished before an error
    propagates, so no request is left running in the background.
    """
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)


class VariantStrategy(ABC):
    """Resolves asset information for a set of device types."""

    @abstractmethod
    async def get_asset_path(
        self,
        client: GameAPIClient,
        target_asset_version: str,
        asset_size: AssetSize,
    ) -> Optional[AssetPaths]:
        """Return the manifest for the strategy's device types."""

    @abstractmethod
    async def get_asset_version_info(
        self, client: GameAPIClient, asset_version: str
    ) -> List[AssetVersionInfo]:
        """Return version info for the strategy's device types."""


class SingleVariantStrategy(VariantStrategy):
    """Resolves for exactly one concrete device type."""

    def __init__(self, device_type: DeviceType) -> None:
        if device_type is DeviceType.ALL:
            raise ValueError("SingleVariantStrategy needs a concrete device type")
        self.device_type = device_type

    async def get_asset_path(
        self,
        client: GameAPIClient,
        target_asset_version: str,
        asset_size: AssetSize,
    ) -> Optional[AssetPaths]:
        return await client.get_asset_path_for_device(
            target_asset_version, asset_size, self.device_type
        )

    async def get_asset_version_info(
        self, client: GameAPIClient, asset_version: str
    ) -> List[AssetVersionInfo]:
        info = await client.get_asset_version_info_for_device(
            asset_version, self.device_type
        )
        return [info] if info is not None else []


class AllVariantsStrategy(VariantStrategy):
    """Resolves for every concrete device type and combines the results."""

    device_types = DeviceType.ALL.concrete_types

    async def get_asset_path(
        self,
        client: GameAPIClient,
        target_asset_version: str,
        asset_size: AssetSize,
    ) -> Optional[AssetPaths]:
        results = await gather_all(
            *(
                client.get_asset_path_for_device(
                    target_asset_version, asset_size, device_type
                )
                for device_type in self.device_types
            )
        )

        merged: Optional[AssetPaths] = None
        for asset_paths in results:
            if asset_paths is None:
                continue
            merged = asset_paths if merged is None else merged.merge(asset_paths)
        return merged

    async def get_asset_version_info(
        self, client: GameAPIClient, asset_version: str
    ) -> List[AssetVersionInfo]:
        results = await gather_all(
            *(
                client.get_asset_version_info_for_device(asset_version, device_type)
                for device_type in self.device_types
            )
        )
        return [info for info in results if info is not None]


def strategy_for(device_type: DeviceType) -> VariantStrategy:
    if device_type is DeviceType.ALL:
        return AllVariantsStrategy()
    return SingleVariantStrategy(device_type)
