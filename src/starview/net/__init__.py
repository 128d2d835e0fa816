"""
Game API networking: envelope encoding, request signing, models and client.
"""

from .client import (
    AllVariantsStrategy,
    GameAPIClient,
    SessionInfo,
    SingleVariantStrategy,
    VariantStrategy,
    generate_udid,
)
from .crypto import decode_base64_msgpack, encode_base64_msgpack, get_request_checksum
from .models import (
    AssetPathArchive,
    AssetPathDiff,
    AssetPaths,
    AssetPathsFull,
    AssetPathsInfo,
    AssetVersionInfo,
    LoadResponse,
    SignupResponse,
)

__all__ = [
    # Client
    "GameAPIClient",
    "SessionInfo",
    "generate_udid",
    # Device type strategies
    "VariantStrategy",
    "SingleVariantStrategy",
    "AllVariantsStrategy",
    # Envelope
    "encode_base64_msgpack",
    "decode_base64_msgpack",
    "get_request_checksum",
    # Models
    "AssetPaths",
    "AssetPathsInfo",
    "AssetPathsFull",
    "AssetPathDiff",
    "AssetPathArchive",
    "AssetVersionInfo",
    "LoadResponse",
    "SignupResponse",
]
