# geoattend/core/tokens.py
import secrets
from datetime import datetime, timedelta, timezone

from geoattend.core.config import settings

TOKEN_PREFIX = "AT"
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_attendance_token(now: datetime) -> str:
    """AT_<base36 millis>_<random>_<random>. Both random parts come from secrets."""
    millis = int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)
    return f"{TOKEN_PREFIX}_{_base36(millis)}_{secrets.token_hex(8)}_{secrets.token_hex(8)}"


def token_expiry(now: datetime) -> datetime:
    return now + timedelta(seconds=settings.QR_TOKEN_TTL_SECONDS)


def is_expired(expiry: datetime | None, now: datetime) -> bool:
    return expiry is None or now > expiry
