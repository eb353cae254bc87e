# geoattend/core/fingerprint.py
"""Deterministic device identity derived from browser fingerprint fields.

This is a deterrent, not proof of hardware identity: anyone who replays
another browser's raw values gets the same id.
"""
import hashlib

# Order matters: changing it changes every stored device id.
FINGERPRINT_FIELDS = ("user_agent", "screen_resolution", "timezone", "language", "platform")
DEVICE_ID_PREFIX = "device_"
DEVICE_ID_HEX_LENGTH = 32


def _field(fingerprint, name):
    if isinstance(fingerprint, dict):
        value = fingerprint.get(name)
    else:
        value = getattr(fingerprint, name, None)
    return "" if value is None else str(value)


def fingerprint_components(fingerprint) -> list[str]:
    return [_field(fingerprint, name) for name in FINGERPRINT_FIELDS]


def compute_device_id(fingerprint) -> str:
    """SHA-256 over the stable fields, truncated to 128 bits.

    Never mix in timestamps or client-generated random values: the same
    hardware has to produce the same id after logout/login.
    """
    joined = "|".join(fingerprint_components(fingerprint))
    digest = hashlib.sha256(joined.encode("utf-8")).hexdigest()
    return f"{DEVICE_ID_PREFIX}{digest[:DEVICE_ID_HEX_LENGTH]}"


def device_name(fingerprint) -> str:
    ua = _field(fingerprint, "user_agent").lower()

    device = "Unknown Device"
    if "iphone" in ua:
        device = "iPhone"
    elif "ipad" in ua:
        device = "iPad"
    elif "android" in ua:
        device = "Android Phone" if "mobile" in ua else "Android Tablet"
    elif "windows" in ua:
        device = "Windows PC"
    elif "macintosh" in ua:
        device = "Mac"
    elif "linux" in ua:
        device = "Linux PC"

    browser = "Unknown Browser"
    if "edg" in ua:
        browser = "Edge"
    elif "chrome" in ua:
        browser = "Chrome"
    elif "firefox" in ua:
        browser = "Firefox"
    elif "safari" in ua:
        browser = "Safari"

    return f"{browser} on {device}"
