from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Allowed:
    reason: str

    @property
    def can_access(self) -> bool:
        return True


@dataclass(frozen=True)
class Denied:
    message: str

    @property
    def can_access(self) -> bool:
        return False


@dataclass(frozen=True)
class CooldownActive(Denied):
    remaining_minutes: int = 0
    retry_at: datetime | None = None


Decision = Allowed | Denied
