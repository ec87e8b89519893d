from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Tuple, Union

from settler.core.accounts.directory import AccountDirectory, normalize
from settler.core.accounts.models import Account, AccountStatus
from settler.core.audit.log import AuditLog
from settler.core.audit.store_jsonl import AuditJsonlStore
from settler.core.auth.credentials import CredentialVerifier, PlaintextVerifier
from settler.core.auth.results import LoginFailure, LoginResult
from settler.core.auth.session import SessionPolicy
from settler.core.config import AuthConfig
from settler.core.errors import ConfigError


class AuthEngine:
    """
    Login, lockout and session lifecycle over one AccountDirectory.

    Expected authentication outcomes are returned as LoginResult values, never
    raised. Every login writes one outcome line to the audit log; an attempt
    that exhausts `max_attempts` also writes the `LOCKED:` event right after it.

    Mutations of one account (lookup, counter, status, session stamp, audit
    append) run under a per-identifier lock so a lockout and a concurrent
    successful login cannot interleave.
    """

    def __init__(
        self,
        directory: Optional[AccountDirectory],
        *,
        max_attempts: int,
        session_timeout_seconds: Union[float, timedelta],
        audit: Optional[AuditLog] = None,
        verifier: Optional[CredentialVerifier] = None,
        logger: Any = None,
        now: Optional[Callable[[], float]] = None,
    ):
        if directory is None:
            raise ConfigError("Account directory is required.")
        try:
            attempts = int(max_attempts)
        except (TypeError, ValueError) as e:
            raise ConfigError("max_attempts must be an integer.", max_attempts=repr(max_attempts)) from e
        if attempts <= 0:
            raise ConfigError("max_attempts must be > 0.", max_attempts=attempts)
        if isinstance(session_timeout_seconds, timedelta):
            session_timeout_seconds = session_timeout_seconds.total_seconds()
        try:
            timeout = float(session_timeout_seconds)
        except (TypeError, ValueError) as e:
            raise ConfigError("session timeout must be a number of seconds.", session_timeout=repr(session_timeout_seconds)) from e
        if not timeout > 0:
            raise ConfigError("session timeout must be positive.", session_timeout=timeout)

        self.directory = directory
        self.max_attempts = attempts
        self.session_policy = SessionPolicy(timeout_seconds=timeout)
        self.audit = audit if audit is not None else AuditLog()
        self.verifier: CredentialVerifier = verifier or PlaintextVerifier()
        self.logger = logger or logging.getLogger("settler.auth")
        self._now = now or time.time

        self._state_lock = threading.Lock()
        self._key_locks: Dict[str, threading.RLock] = {}
        self._last_error: Optional[str] = None

    @classmethod
    def from_config(
        cls,
        directory: Optional[AccountDirectory],
        cfg: AuthConfig,
        *,
        verifier: Optional[CredentialVerifier] = None,
        logger: Any = None,
        now: Optional[Callable[[], float]] = None,
    ) -> "AuthEngine":
        sink = AuditJsonlStore(path=cfg.audit_path) if cfg.audit_path else None
        return cls(
            directory,
            max_attempts=cfg.max_attempts,
            session_timeout_seconds=cfg.session_timeout_seconds,
            audit=AuditLog(sink=sink),
            verifier=verifier,
            logger=logger,
            now=now,
        )

    @property
    def session_timeout_seconds(self) -> float:
        return self.session_policy.timeout_seconds

    # ---- login ----
    def login(self, raw_identifier: Optional[str], secret: Optional[str]) -> LoginResult:
        self._set_last_error(None)

        key = normalize(raw_identifier)
        if not key:
            return self._fail(LoginFailure.EMPTY_IDENTIFIER, "username is empty", "FAIL empty-username")
        if secret is None:
            secret = ""

        # unknown identifiers touch no account state and never get a per-key lock
        if self.directory.lookup(key) is None:
            return self._unknown(key)

        with self._lock_for(key):
            acct = self.directory.lookup(key)
            if acct is None:
                return self._unknown(key)

            name = acct.username
            if acct.status == AccountStatus.EXPIRED:
                return self._fail(LoginFailure.ACCOUNT_EXPIRED, f"account expired: {name}", f"FAIL expired:{name}")
            if acct.status == AccountStatus.LOCKED:
                return self._fail(LoginFailure.ACCOUNT_LOCKED, f"account locked: {name}", f"FAIL locked:{name}")

            if not self.verifier.verify(secret, acct.secret):
                return self._bad_credential(acct)

            acct.failed_attempts = 0
            acct.logged_in = True
            acct.last_activity = float(self._now())
            self.audit.append(f"SUCCESS:{name}")

        self.logger.info("login ok: %s (%s)", name, acct.role.value)
        return LoginResult.success(acct)

    def _bad_credential(self, acct: Account) -> LoginResult:
        name = acct.username
        acct.failed_attempts += 1
        attempt = acct.failed_attempts
        if attempt < self.max_attempts:
            return self._fail(
                LoginFailure.BAD_CREDENTIAL,
                f"invalid password (attempt {attempt}): {name}",
                f"FAIL bad-password:{name}:attempt={attempt}",
                attempt=attempt,
            )

        message = f"account locked after max attempts: {name}"
        self.audit.append(f"FAIL bad-password:{name}:attempt={attempt}")
        self.audit.append(f"LOCKED:{name}")
        acct.status = AccountStatus.LOCKED
        self._set_last_error(message)
        self.logger.warning("account locked after %d failed attempts: %s", attempt, name)
        return LoginResult.failed(LoginFailure.BAD_CREDENTIAL, message, attempt=attempt, locked_out=True)

    def _unknown(self, key: str) -> LoginResult:
        return self._fail(LoginFailure.UNKNOWN_ACCOUNT, f"unknown user: {key}", f"FAIL unknown-user:{key}")

    def _fail(self, failure: LoginFailure, message: str, audit_line: str, *, attempt: int = 0) -> LoginResult:
        self.audit.append(audit_line)
        self._set_last_error(message)
        self.logger.warning("login failed (%s): %s", failure.value, message)
        return LoginResult.failed(failure, message, attempt=attempt)

    # ---- session ----
    def touch(self, account: Optional[Account]) -> None:
        if account is None:
            return
        with self._lock_for(account.key):
            account.last_activity = float(self._now())

    def logout(self, account: Optional[Account]) -> None:
        if account is None:
            return
        with self._lock_for(account.key):
            account.logged_in = False

    def is_session_expired(self, account: Optional[Account], now: Optional[float] = None) -> bool:
        if now is None:
            now = float(self._now())
        return self.session_policy.is_expired(account, now)

    # ---- inspection ----
    def get_audit(self) -> Tuple[str, ...]:
        return self.audit.entries()

    def get_last_error(self) -> Optional[str]:
        with self._state_lock:
            return self._last_error

    def _set_last_error(self, message: Optional[str]) -> None:
        with self._state_lock:
            self._last_error = message

    def _lock_for(self, key: str) -> threading.RLock:
        with self._state_lock:
            lk = self._key_locks.get(key)
            if lk is None:
                lk = threading.RLock()
                self._key_locks[key] = lk
            return lk
