"""
Base64 and data URI helpers shared by the pipeline stages
"""

import base64
from typing import Tuple


def split_data_uri(value: str) -> Tuple[str, str]:
    """Split 'data:<mime>;base64,<payload>' into (header, payload); bare base64 has an empty header"""
    if value.startswith("data:") and "," in value:
        header, payload = value.split(",", 1)
        return header, payload
    return "", value


def decode_base64(value: str) -> bytes:
    """
    Decode standard or URL-safe base64, padded or not

    Raises:
        binascii.Error: characters outside either alphabet
    """
    value = "".join(value.split()).replace("+", "-").replace("/", "_")
    value += "=" * (-len(value) % 4)
    return base64.b64decode(value, altchars=b"-_", validate=True)


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def to_data_uri(mime_type: str, data: bytes) -> str:
    return f"data:{mime_type};base64,{encode_base64(data)}"
