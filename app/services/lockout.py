"""Account lockout after repeated failed sign-ins, as pure state transitions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from app.core.clock import as_utc

if TYPE_CHECKING:
    from app.core.config import Settings
    from app.models import User


@dataclass(frozen=True)
class LockoutState:
    """Consecutive failed attempts and the optional lock expiry for one account."""

    attempts: int = 0
    lock_until: datetime | None = None

    @classmethod
    def from_user(cls, user: "User") -> "LockoutState":
        lock_until = as_utc(user.lock_until) if user.lock_until is not None else None
        return cls(attempts=user.login_attempts or 0, lock_until=lock_until)

    def apply_to(self, user: "User") -> None:
        user.login_attempts = self.attempts
        user.lock_until = self.lock_until


@dataclass(frozen=True)
class LockoutPolicy:
    max_attempts: int = 5
    lockout_duration: timedelta = timedelta(minutes=15)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "LockoutPolicy":
        return cls(
            max_attempts=settings.MAX_LOGIN_ATTEMPTS,
            lockout_duration=timedelta(minutes=settings.LOCKOUT_MINUTES),
        )

    def is_locked(self, state: LockoutState, now: datetime) -> bool:
        return state.lock_until is not None and state.lock_until > now

    def remaining_minutes(self, state: LockoutState, now: datetime) -> int:
        """Whole minutes until the lock lifts, rounded up; 0 when not locked."""
        if not self.is_locked(state, now):
            return 0
        seconds = (state.lock_until - now).total_seconds()
        return max(1, math.ceil(seconds / 60))

    def register_failure(self, state: LockoutState, now: datetime) -> LockoutState:
        """
        Count one failed attempt. Reaching max_attempts locks the account for
        lockout_duration. The count is not reset when an earlier lock lapses, so
        a failure after an expired lock locks again.
        """
        attempts = state.attempts + 1
        lock_until = state.lock_until
        if attempts >= self.max_attempts:
            lock_until = now + self.lockout_duration
        return LockoutState(attempts=attempts, lock_until=lock_until)

    def register_success(self, state: LockoutState) -> LockoutState:
        return LockoutState()
