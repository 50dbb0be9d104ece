"""Conversions between record values and API values."""

import ipaddress
import random
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from scaleway_provider.api.rdb import GB
from scaleway_provider.utils.errors import ValidationError


def expand_string_ptr(value: Any) -> Optional[str]:
    """None for unset or empty values, the string otherwise."""
    if value is None or value == "":
        return None
    return str(value)


def expand_or_generate_string(value: Any, prefix: str) -> str:
    """The value when set, else a generated `tf-<prefix>-<suffix>` name."""
    if value:
        return str(value)
    return new_random_name(prefix)


def new_random_name(prefix: str) -> str:
    """Generated resource name, eg tf-rdb-elated-kirch."""
    left = random.choice(_NAME_LEFT)
    right = random.choice(_NAME_RIGHT)
    return f"tf-{prefix}-{left}-{right}"


_NAME_LEFT = (
    "admiring", "bold", "brave", "clever", "eager", "elated", "focused", "gallant",
    "happy", "jolly", "keen", "lucid", "modest", "nifty", "quirky", "serene",
)
_NAME_RIGHT = (
    "babbage", "bell", "curie", "darwin", "euler", "gauss", "hopper", "kirch",
    "lovelace", "moser", "noether", "pascal", "shannon", "tesla", "turing", "wilson",
)


def expand_map_string_string(value: Optional[Dict[str, Any]]) -> Dict[str, str]:
    return {str(k): str(v) for k, v in (value or {}).items()}


def expand_settings(value: Optional[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Map of settings to the API's list of name/value pairs, sorted by name."""
    return [{"name": name, "value": str(v)} for name, v in sorted((value or {}).items())]


def flatten_settings(settings: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    return {s["name"]: s["value"] for s in settings or []}


def expand_tags(value: Optional[List[str]]) -> List[str]:
    return [str(tag) for tag in value or []]


def expand_updated_tags(value: Optional[List[str]]) -> List[str]:
    """Tags for an update request: an empty list clears them."""
    return expand_tags(value)


def expand_time(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp.

    Raises:
        ValidationError: If the value is not a timestamp
    """
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"invalid RFC 3339 time: {value}") from None


def flatten_time(value: Optional[Union[datetime, str]]) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        return value
    return value.isoformat().replace("+00:00", "Z")


def expand_ip_net(value: Optional[str]) -> Optional[str]:
    """Validate a CIDR or plain IP; a plain IP becomes a single-host network.

    Raises:
        ValidationError: If the value is not an IP network
    """
    if not value:
        return None
    try:
        return str(ipaddress.ip_network(value, strict=False))
    except ValueError:
        raise ValidationError(f"invalid IP network: {value}") from None


def flatten_ip_net(value: Optional[str]) -> str:
    return value or ""


def expand_size_gb(value: Optional[int]) -> Optional[int]:
    """Size in GB to bytes."""
    if not value:
        return None
    return int(value) * GB


def flatten_size_gb(size: Optional[int]) -> int:
    """Size in bytes to GB."""
    if not size:
        return 0
    return int(size) // GB
