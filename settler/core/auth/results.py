from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from settler.core.accounts.models import Account


class LoginFailure(str, Enum):
    EMPTY_IDENTIFIER = "empty_identifier"
    UNKNOWN_ACCOUNT = "unknown_account"
    ACCOUNT_EXPIRED = "account_expired"
    ACCOUNT_LOCKED = "account_locked"
    BAD_CREDENTIAL = "bad_credential"


@dataclass(frozen=True)
class LoginResult:
    """
    Outcome of AuthEngine.login.

    Exactly one of `account` (success) or `failure` is set. For BAD_CREDENTIAL,
    `attempt` is the account's failure count after this attempt and `locked_out`
    tells whether this attempt triggered the lockout.
    """

    account: Optional[Account] = None
    failure: Optional[LoginFailure] = None
    message: str = ""
    attempt: int = 0
    locked_out: bool = False

    @property
    def ok(self) -> bool:
        return self.account is not None and self.failure is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, account: Account) -> "LoginResult":
        return cls(account=account)

    @classmethod
    def failed(cls, failure: LoginFailure, message: str, *, attempt: int = 0, locked_out: bool = False) -> "LoginResult":
        return cls(failure=failure, message=message, attempt=attempt, locked_out=locked_out)
