from __future__ import annotations

import pytest

from settler.core.accounts import AccountDirectory, AccountStatus, Role
from settler.core.auth import AuthEngine


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.t = float(start)

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += float(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def directory():
    d = AccountDirectory()
    d.insert("alice", "hunter2", AccountStatus.ACTIVE, Role.COLONY_RESIDENT)
    d.insert("bob", "correct horse", AccountStatus.ACTIVE, Role.MISSION_CONTROL_OPERATOR)
    return d


@pytest.fixture
def engine(directory, clock):
    return AuthEngine(directory, max_attempts=3, session_timeout_seconds=900, now=clock)
