"""Player identity normalization."""
import re
from typing import Optional

from scoreboard.models import Device, NAME_MAX_LENGTH

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def canonical_key(name: str) -> str:
    """
    Derive the storage key for a display name.

    Lowercases, trims, collapses every run of non-alphanumeric characters to
    one hyphen and strips hyphens from both ends, so "Bob Smith!!" and
    "bob   smith" both map to "bob-smith". Returns "" when nothing is left.
    """
    return _NON_ALNUM.sub("-", name.lower().strip()).strip("-")


def display_name(name: str) -> str:
    """Trimmed display name, capped at NAME_MAX_LENGTH characters."""
    return name.strip()[:NAME_MAX_LENGTH]


def normalize_device(device: Optional[str]) -> Device:
    return Device.MOBILE if device == Device.MOBILE.value else Device.DESKTOP
