"""
Enumerations shared by the API client, the cache and the CLI.
"""

from enum import Enum
from typing import Tuple


class DeviceType(str, Enum):
    """
    Platform that assets are requested for.

    `ALL` is not sent to the server. It tells the client to resolve assets for
    every concrete platform and merge the results.
    """

    ANDROID = "android"
    IOS = "ios"
    ALL = "all"

    @property
    def wire_value(self) -> str:
        """
        Value of the `device` header for this device type.

        Raises:
            ValueError: If called on `ALL`, which has no wire representation.
        """
        if self is DeviceType.ANDROID:
            return "2"
        if self is DeviceType.IOS:
            return "1"
        raise ValueError("DeviceType.ALL has no wire value")

    @property
    def concrete_types(self) -> Tuple["DeviceType", ...]:
        """Concrete device types this value resolves to, android first."""
        if self is DeviceType.ALL:
            return (DeviceType.ANDROID, DeviceType.IOS)
        return (self,)


class AssetSize(str, Enum):
    """Size class of the asset set requested from the server."""

    FULL = "full"
    SHORT = "short"

    @property
    def wire_value(self) -> str:
        if self is AssetSize.FULL:
            return "fulfill"
        return "shortened"
