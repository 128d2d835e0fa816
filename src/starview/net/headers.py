"""
Headers the game server expects on every request.
"""

from typing import Dict, Optional

from starview.constants import (
    APP_VERSION,
    CONTENT_TYPE,
    DEVICE_NAME,
    FLASH_VERSION,
    HEADER_APP_VERSION,
    HEADER_CONTENT_TYPE,
    HEADER_DEVICE_NAME,
    HEADER_FLASH_VERSION,
    HEADER_LOGIN_TOKEN,
    HEADER_SHORT_UDID,
    HEADER_UDID,
    HEADER_USER_AGENT,
    USER_AGENT,
)


class Headers:
    """
    Mutable collection of the client's identification headers.

    Session headers (`short_udid`, `login_token`) are added once the server
    assigns them; per-request headers are layered on top with `build()`.
    """

    def __init__(self, udid: str) -> None:
        self._headers: Dict[str, str] = {
            HEADER_USER_AGENT: USER_AGENT,
            HEADER_CONTENT_TYPE: CONTENT_TYPE,
            HEADER_DEVICE_NAME: DEVICE_NAME,
            HEADER_APP_VERSION: APP_VERSION,
            HEADER_FLASH_VERSION: FLASH_VERSION,
            HEADER_UDID: udid,
        }

    def insert(self, name: str, value: str) -> None:
        if "\n" in value or "\r" in value:
            raise ValueError(f"Invalid value for header {name!r}")
        self._headers[name] = value

    def set_login_token(self, login_token: str) -> None:
        self.insert(HEADER_LOGIN_TOKEN, login_token)

    def set_short_udid(self, short_udid: int) -> None:
        self.insert(HEADER_SHORT_UDID, str(short_udid))

    def clear_session(self) -> None:
        self._headers.pop(HEADER_LOGIN_TOKEN, None)
        self._headers.pop(HEADER_SHORT_UDID, None)

    def build(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Return a copy of the headers with `extra` layered on top."""
        headers = dict(self._headers)
        if extra:
            headers.update(extra)
        return headers
