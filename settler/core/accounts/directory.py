from __future__ import annotations

import threading
from typing import Dict, List, Optional

from settler.core.accounts.models import Account, AccountStatus, Role
from settler.core.errors import DuplicateAccountError, ValidationError


def normalize(raw: Optional[str]) -> str:
    """Login key for an identifier: surrounding whitespace stripped, lower-cased."""
    if raw is None:
        return ""
    return str(raw).strip().lower()


class AccountDirectory:
    """
    Canonical in-memory account table keyed by `normalize(identifier)`.

    Duplicate handling is the caller's choice:
    - insert_if_absent (and insert) reject an existing key
    - insert_or_replace overwrites it
    """

    first_generated_id = 2000

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._accounts: Dict[str, Account] = {}
        self._next_id = self.first_generated_id

    @staticmethod
    def normalize(raw: Optional[str]) -> str:
        return normalize(raw)

    def lookup(self, raw: Optional[str]) -> Optional[Account]:
        """Returns None when no account matches the normalized identifier."""
        key = normalize(raw)
        if not key:
            return None
        with self._lock:
            return self._accounts.get(key)

    def exists(self, raw: Optional[str]) -> bool:
        return self.lookup(raw) is not None

    def insert_if_absent(
        self,
        raw: str,
        secret: str,
        status: AccountStatus = AccountStatus.ACTIVE,
        role: Role = Role.COLONY_RESIDENT,
    ) -> Account:
        key = self._require_key(raw)
        with self._lock:
            if key in self._accounts:
                raise DuplicateAccountError(f"Account already exists: {key}", key=key)
            return self._store(self._build(key, raw, secret, status, role))

    def insert(
        self,
        raw: str,
        secret: str,
        status: AccountStatus = AccountStatus.ACTIVE,
        role: Role = Role.COLONY_RESIDENT,
    ) -> Account:
        return self.insert_if_absent(raw, secret, status, role)

    def insert_or_replace(
        self,
        raw: str,
        secret: str,
        status: AccountStatus = AccountStatus.ACTIVE,
        role: Role = Role.COLONY_RESIDENT,
    ) -> Account:
        key = self._require_key(raw)
        with self._lock:
            # replacement moves to the end of insertion order
            self._accounts.pop(key, None)
            return self._store(self._build(key, raw, secret, status, role))

    def accounts(self) -> List[Account]:
        with self._lock:
            return list(self._accounts.values())

    def clear(self) -> None:
        with self._lock:
            self._accounts.clear()

    def seed_samples(self) -> List[Account]:
        """Reset the table to the three sample settlers."""
        samples = [
            Account(account_id="U1001", key="resident.valid@mars.local", username="resident.valid@mars.local", secret="Passw0rd!", status=AccountStatus.ACTIVE, role=Role.COLONY_RESIDENT),
            Account(account_id="U1002", key="resident.expired@mars.local", username="resident.expired@mars.local", secret="AnyPass", status=AccountStatus.EXPIRED, role=Role.MISSION_CONTROL_OPERATOR),
            Account(account_id="U1003", key="resident.locked@mars.local", username="resident.locked@mars.local", secret="Pass123", status=AccountStatus.LOCKED, role=Role.INFRASTRUCTURE_TECHNICIAN),
        ]
        with self._lock:
            self._accounts.clear()
            for acct in samples:
                self._store(acct)
        return samples

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)

    def __contains__(self, raw: object) -> bool:
        return isinstance(raw, str) and self.exists(raw)

    def _require_key(self, raw: Optional[str]) -> str:
        key = normalize(raw)
        if not key:
            raise ValidationError("Account identifier is empty.")
        return key

    def _build(self, key: str, raw: str, secret: str, status: AccountStatus, role: Role) -> Account:
        account_id = f"U{self._next_id}"
        self._next_id += 1
        return Account(
            account_id=account_id,
            key=key,
            username=str(raw).strip(),
            secret=secret if secret is not None else "",
            status=status,
            role=role,
        )

    def _store(self, acct: Account) -> Account:
        self._accounts[acct.key] = acct
        return acct
