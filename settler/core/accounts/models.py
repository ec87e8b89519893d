from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    LOCKED = "LOCKED"
    EXPIRED = "EXPIRED"


class Role(str, Enum):
    COLONY_RESIDENT = "COLONY_RESIDENT"
    MISSION_CONTROL_OPERATOR = "MISSION_CONTROL_OPERATOR"
    INFRASTRUCTURE_TECHNICIAN = "INFRASTRUCTURE_TECHNICIAN"

    def pretty(self) -> str:
        return _ROLE_LABELS.get(self, self.value)


_ROLE_LABELS = {
    Role.COLONY_RESIDENT: "Colony Resident",
    Role.MISSION_CONTROL_OPERATOR: "Mission Control Operator",
    Role.INFRASTRUCTURE_TECHNICIAN: "Infrastructure Technician",
}


class Account(BaseModel):
    """
    One login-capable identity.

    Owned by the AccountDirectory. Status, failure counter and session fields
    are mutated only by the AuthEngine.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    account_id: str
    key: str
    username: str
    secret: str = Field(default="", repr=False)
    status: AccountStatus = AccountStatus.ACTIVE
    role: Role = Role.COLONY_RESIDENT

    failed_attempts: int = Field(default=0, ge=0)
    logged_in: bool = False
    last_activity: Optional[float] = None

    @property
    def has_session(self) -> bool:
        return bool(self.logged_in) and self.last_activity is not None
