"""Masking of reader and tag credentials in log output.

Reader usernames and tag ids act as access credentials for the RFID
hardware.  DEBUG payload dumps print only their last characters.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "tagid",
        "tagcredential",
        "readerusername",
        "readercredential",
        "rfidreaderusername",
        "studentid",
        "driverid",
        "password",
        "token",
        "authorization",
    }
)

_MAX_DEPTH = 10


def mask_credential(value: str, *, keep: int = 3) -> str:
    """Keep the last *keep* characters of a credential, mask the rest."""
    if len(value) <= keep:
        return "*" * len(value)
    return "*" * (len(value) - keep) + value[-keep:]


def redact_for_log(value: Any, *, max_string: int = 256) -> Any:
    """Copy of a decoded payload with credentials masked and long strings cut."""
    return _redact(value, max_string, 0)


def _redact(value: Any, max_string: int, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        return "<max-depth>"
    if isinstance(value, Mapping):
        return {str(k): _redact_field(str(k), v, max_string, depth) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact(item, max_string, depth + 1) for item in value]
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}...<truncated>"
    if value is None or isinstance(value, (int, float, bool)):
        return value
    return repr(value)


def _redact_field(key: str, value: Any, max_string: int, depth: int) -> Any:
    if key.lower() not in _CREDENTIAL_KEYS:
        return _redact(value, max_string, depth + 1)
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return mask_credential(str(value))
    return "<redacted>"
