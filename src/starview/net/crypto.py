"""
Wire envelope and request signing for the game API.

Request and response bodies are MessagePack maps encoded as standard base64
text. Every request is signed with a SHA-1 digest of the client identity, the
session handle, the request path and the encoded body.
"""

import base64
import binascii
import hashlib
from typing import Any, Dict, Mapping

import msgpack

from starview.exceptions import DecodeError


def encode_base64_msgpack(payload: Mapping[str, Any]) -> str:
    """
    Serialize a mapping to MessagePack and encode the bytes as base64 text.

    Floats are packed as single precision, which is what the game client sends.

    Raises:
        DecodeError: If the payload contains values MessagePack cannot serialize.
    """
    try:
        packed = msgpack.packb(dict(payload), use_bin_type=True, use_single_float=True)
    except (TypeError, ValueError) as e:
        raise DecodeError("Could not encode request body", details=str(e)) from e
    return base64.b64encode(packed).decode("ascii")


def decode_base64_msgpack(text: str) -> Dict[str, Any]:
    """
    Decode base64 text into MessagePack bytes and unpack them into a mapping.

    Raises:
        DecodeError: If the text is not valid base64, not valid MessagePack,
            or does not contain a map.
    """
    try:
        packed = base64.b64decode(text.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError("Response body is not valid base64", details=str(e)) from e

    try:
        unpacked = msgpack.unpackb(packed, raw=False, strict_map_key=False)
    except (msgpack.exceptions.UnpackException, ValueError, TypeError) as e:
        raise DecodeError(
            "Response body is not valid MessagePack", details=str(e)
        ) from e

    if not isinstance(unpacked, dict):
        raise DecodeError(
            "Response body is not a map",
            details=f"got {type(unpacked).__name__}",
        )
    return unpacked


def get_request_checksum(udid: str, viewer_id: str, api_path: str, body: str) -> str:
    """
    Compute the `param` header value the server uses to verify a request.

    Parameters:
        udid (str): The client's identity.
        viewer_id (str): The session handle, or an empty string before signup.
        api_path (str): Path component of the request URL.
        body (str): The base64 request body.

    Returns:
        str: Lowercase hex SHA-1 digest.
    """
    hasher = hashlib.sha1()
    hasher.update(udid.encode("utf-8"))
    hasher.update(viewer_id.encode("utf-8"))
    hasher.update(api_path.encode("utf-8"))
    hasher.update(body.encode("utf-8"))
    return hasher.hexdigest()
