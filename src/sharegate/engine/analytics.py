"""Access analytics: what gets recorded when a view is consumed.

Only derived values are stored. The client IP is reduced to a SHA-256
digest before it reaches the store, and the user agent is classified
into a coarse device type.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime

from sharegate.contracts.items import AccessRecord, ClientInfo

DEVICE_DESKTOP = "Desktop"
DEVICE_MOBILE = "Mobile"
DEVICE_TABLET = "Tablet"
DEVICE_UNKNOWN = "Unknown"

# Checked before mobile: most tablet agents also say "mobile" or "android"
_TABLET_MARKERS = ("ipad", "tablet", "kindle", "silk", "playbook")
_MOBILE_MARKERS = (
    "mobile",
    "iphone",
    "ipod",
    "android",
    "blackberry",
    "windows phone",
    "opera mini",
)
_DESKTOP_MARKERS = ("windows", "macintosh", "mac os x", "x11", "linux", "cros")


def device_type(user_agent: str | None) -> str:
    """Classify a user agent string into Desktop, Mobile, Tablet or Unknown.

    Example:
        >>> device_type("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)")
        'Mobile'
        >>> device_type(None)
        'Unknown'
    """
    if not user_agent:
        return DEVICE_UNKNOWN
    agent = user_agent.lower()
    if any(marker in agent for marker in _TABLET_MARKERS):
        return DEVICE_TABLET
    # Android without "mobile" is a tablet by convention
    if "android" in agent and "mobile" not in agent:
        return DEVICE_TABLET
    if any(marker in agent for marker in _MOBILE_MARKERS):
        return DEVICE_MOBILE
    if any(marker in agent for marker in _DESKTOP_MARKERS):
        return DEVICE_DESKTOP
    return DEVICE_UNKNOWN


def hash_ip(ip_address: str | None) -> str | None:
    """SHA-256 hex digest of an IP address, or None if absent."""
    if not ip_address:
        return None
    return hashlib.sha256(ip_address.strip().encode("utf-8")).hexdigest()


def build_access_record(
    item_id: str,
    client: ClientInfo | None,
    accessed_at: datetime,
) -> AccessRecord:
    """Build the AccessRecord for one consumed view."""
    client = client or ClientInfo()
    return AccessRecord(
        access_id=uuid.uuid4().hex,
        item_id=item_id,
        accessed_at=accessed_at,
        device_type=device_type(client.user_agent),
        user_agent=client.user_agent,
        ip_hash=hash_ip(client.ip_address),
    )
