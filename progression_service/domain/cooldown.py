import math
from datetime import datetime, timedelta

from .decisions import CooldownActive
from .entities import Cooldown


def check_cooldown(cooldown: Cooldown | None, cooldown_hours: float, now: datetime,
                   message: str) -> CooldownActive | None:
    """Return a CooldownActive decision while the retry window is still open.

    The window is half-open: an attempt exactly ``cooldown_hours`` after the
    last one is permitted. No cooldown entry always permits.
    """
    if cooldown is None:
        return None
    window = timedelta(hours=cooldown_hours)
    elapsed = now - cooldown.last_attempt_at
    if elapsed >= window:
        return None
    remaining = window - elapsed
    return CooldownActive(
        message=message,
        remaining_minutes=math.ceil(remaining.total_seconds() / 60),
        retry_at=cooldown.last_attempt_at + window,
    )
