from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


def is_expired(*, logged_in: bool, last_activity: Optional[float], timeout_seconds: float, now: float) -> bool:
    """
    Session expiry decision.

    Not logged in or never active counts as expired. Otherwise expired only when
    strictly more than `timeout_seconds` have elapsed since `last_activity`.
    """
    if not logged_in or last_activity is None:
        return True
    return (float(now) - float(last_activity)) > float(timeout_seconds)


@dataclass(frozen=True)
class SessionPolicy:
    timeout_seconds: float

    def is_expired(self, account: Any, now: float) -> bool:
        if account is None:
            return True
        return is_expired(
            logged_in=bool(getattr(account, "logged_in", False)),
            last_activity=getattr(account, "last_activity", None),
            timeout_seconds=self.timeout_seconds,
            now=now,
        )

    def expires_at(self, account: Any) -> Optional[float]:
        last = getattr(account, "last_activity", None) if account is not None else None
        if last is None:
            return None
        return float(last) + float(self.timeout_seconds)
