"""Wire helpers for the RAPI JSON-over-HTTP protocol.

Covers the two places where the RAPI deviates from what an HTTP library
does by default: query flags must be ``0``/``1`` instead of ``true``/
``false``, and some responses are bare scalars that need a lenient decode.
"""

import enum
import json
from collections.abc import Mapping
from typing import Any

import structlog

from ..errors import DecodeError

logger = structlog.get_logger(__name__)


def decode_body(text: str) -> Any:
    """Decode a RAPI response body.

    The body is first parsed as strict JSON. Some RAPI responses are bare
    values without an enclosing structure; if the strict parse fails, the
    body is wrapped in a single-element array, parsed again, and the sole
    element is returned.

    Args:
        text: Response body.

    Returns:
        Decoded JSON value.

    Raises:
        DecodeError: If neither attempt yields valid JSON.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Strict decode failed, retrying wrapped in array")

    try:
        wrapped = json.loads(f"[{text}]")
    except json.JSONDecodeError as exc:
        msg = f"Response body is not valid JSON: {text[:80]!r}"
        raise DecodeError(msg, body=text) from exc

    if len(wrapped) != 1:
        msg = f"Response body is not a single JSON value: {text[:80]!r}"
        raise DecodeError(msg, body=text)
    return wrapped[0]


def _encode_value(value: Any) -> str:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


def encode_params(params: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Encode query parameters the way the RAPI expects them.

    - ``None`` values are dropped.
    - Booleans are sent as ``1`` or ``0``.
    - Lists and tuples become one ``key=item`` pair per item.
    - Enum members are sent by value.

    Args:
        params: Parameter names mapped to values, in request order.

    Returns:
        Ordered list of (key, value) pairs suitable for ``httpx`` params.
    """
    encoded: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, list | tuple):
            encoded.extend((key, _encode_value(item)) for item in value)
        else:
            encoded.append((key, _encode_value(value)))
    return encoded


def encode_role_body(role: Any) -> str:
    """Encode a node role as a JSON string literal.

    The role endpoint reads its body as a bare JSON string, so the role is
    sent with its quotes: ``"master-candidate"``.
    """
    return json.dumps(_encode_value(role))
