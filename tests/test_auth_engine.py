from __future__ import annotations

import threading
from datetime import timedelta

import pytest

from settler.core.accounts import AccountDirectory, AccountStatus, Role
from settler.core.audit import AuditLog
from settler.core.auth import AuthEngine, LoginFailure
from settler.core.errors import ConfigError


class _RecordingLogger:
    def __init__(self):
        self.lines = []

    def info(self, msg, *args):
        self.lines.append(("info", msg % args))

    def warning(self, msg, *args):
        self.lines.append(("warning", msg % args))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0, "session_timeout_seconds": 900},
        {"max_attempts": -1, "session_timeout_seconds": 900},
        {"max_attempts": 3, "session_timeout_seconds": 0},
        {"max_attempts": 3, "session_timeout_seconds": -5},
        {"max_attempts": 3, "session_timeout_seconds": timedelta(0)},
        {"max_attempts": "many", "session_timeout_seconds": 900},
    ],
)
def test_invalid_construction_is_fatal(kwargs):
    with pytest.raises(ConfigError) as ei:
        AuthEngine(AccountDirectory(), **kwargs)
    assert ei.value.recoverable is False


def test_missing_directory_is_fatal():
    with pytest.raises(ConfigError):
        AuthEngine(None, max_attempts=3, session_timeout_seconds=900)


def test_timedelta_timeout_accepted():
    eng = AuthEngine(AccountDirectory(), max_attempts=3, session_timeout_seconds=timedelta(minutes=15))
    assert eng.session_timeout_seconds == 900.0


def test_successful_login_starts_session(engine, clock):
    res = engine.login("alice", "hunter2")
    assert res.ok and bool(res) is True
    acct = res.account
    assert acct.logged_in is True
    assert acct.last_activity == clock.t
    assert acct.failed_attempts == 0
    assert engine.get_audit() == ("SUCCESS:alice",)
    assert engine.get_last_error() is None


def test_identifier_variants_are_same_account(engine, directory):
    res = engine.login("  ALICE ", "hunter2")
    assert res.account is directory.lookup("alice")


def test_empty_identifier_fails_without_lookup(clock):
    class _Dir(AccountDirectory):
        def lookup(self, raw):
            raise AssertionError("lookup must not happen")

    eng = AuthEngine(_Dir(), max_attempts=3, session_timeout_seconds=900, now=clock)
    for raw in (None, "", "   "):
        res = eng.login(raw, "x")
        assert res.failure == LoginFailure.EMPTY_IDENTIFIER
    assert eng.get_audit() == ("FAIL empty-username",) * 3
    assert eng.get_last_error() == "username is empty"


def test_unknown_account_audits_normalized_key(engine):
    res = engine.login(" Ghost ", "x")
    assert res.failure == LoginFailure.UNKNOWN_ACCOUNT
    assert engine.get_audit()[-1] == "FAIL unknown-user:ghost"
    assert engine.get_last_error() == "unknown user: ghost"


def test_none_secret_is_a_bad_credential(engine, directory):
    res = engine.login("alice", None)
    assert res.failure == LoginFailure.BAD_CREDENTIAL
    assert res.attempt == 1
    assert directory.lookup("alice").failed_attempts == 1


def test_expired_beats_locked_and_correct_secret(engine, directory):
    acct = directory.lookup("alice")
    acct.status = AccountStatus.EXPIRED
    acct.failed_attempts = 10
    res = engine.login("alice", "hunter2")
    assert res.failure == LoginFailure.ACCOUNT_EXPIRED
    assert engine.get_audit()[-1] == "FAIL expired:alice"
    assert acct.failed_attempts == 10
    assert acct.logged_in is False


def test_locked_account_rejects_correct_secret(engine, directory):
    directory.lookup("bob").status = AccountStatus.LOCKED
    res = engine.login("bob", "correct horse")
    assert res.failure == LoginFailure.ACCOUNT_LOCKED
    assert engine.get_audit()[-1] == "FAIL locked:bob"
    assert engine.get_last_error() == "account locked: bob"


def test_alice_lockout_scenario(engine, directory):
    results = [engine.login("Alice  ", "wrong") for _ in range(3)]
    assert [r.attempt for r in results] == [1, 2, 3]
    assert [r.locked_out for r in results] == [False, False, True]
    assert all(r.failure == LoginFailure.BAD_CREDENTIAL for r in results)
    assert directory.lookup("alice").status == AccountStatus.LOCKED

    fourth = engine.login("alice", "hunter2")
    assert fourth.failure == LoginFailure.ACCOUNT_LOCKED

    assert engine.get_audit() == (
        "FAIL bad-password:alice:attempt=1",
        "FAIL bad-password:alice:attempt=2",
        "FAIL bad-password:alice:attempt=3",
        "LOCKED:alice",
        "FAIL locked:alice",
    )


def test_lock_entry_is_last_for_account_after_threshold(engine):
    engine.login("bob", "nope")
    engine.login("alice", "nope")
    engine.login("bob", "nope")
    engine.login("alice", "hunter2")
    engine.login("bob", "nope")
    assert engine.audit.entries_for("bob")[-1] == "LOCKED:bob"
    assert engine.get_last_error() == "account locked after max attempts: bob"


def test_success_resets_failure_counter(engine, directory):
    engine.login("alice", "bad")
    engine.login("alice", "bad")
    assert engine.login("alice", "hunter2").ok
    assert directory.lookup("alice").failed_attempts == 0
    res = engine.login("alice", "bad")
    assert res.attempt == 1


def test_last_error_cleared_on_success(engine):
    engine.login("alice", "bad")
    assert engine.get_last_error() is not None
    engine.login("alice", "hunter2")
    assert engine.get_last_error() is None


def test_each_outcome_writes_one_entry(engine, directory):
    directory.insert("old", "pw", AccountStatus.EXPIRED)
    directory.insert("stuck", "pw", AccountStatus.LOCKED)
    calls = [("", "x"), ("ghost", "x"), ("old", "pw"), ("stuck", "pw"), ("alice", "bad"), ("alice", "hunter2")]
    for i, (who, pw) in enumerate(calls, start=1):
        engine.login(who, pw)
        assert len(engine.get_audit()) == i


def test_touch_and_session_expiry(engine, clock):
    acct = engine.login("alice", "hunter2").account
    clock.advance(900)
    assert engine.is_session_expired(acct) is False
    clock.advance(0.001)
    assert engine.is_session_expired(acct) is True
    engine.touch(acct)
    assert engine.is_session_expired(acct) is False
    assert engine.is_session_expired(acct, now=clock.t + 900.001) is True


def test_session_expired_defaults(engine):
    assert engine.is_session_expired(None) is True
    acct = engine.directory.lookup("bob")
    assert engine.is_session_expired(acct) is True


def test_logout_is_idempotent(engine):
    acct = engine.login("alice", "hunter2").account
    engine.logout(acct)
    engine.logout(acct)
    assert acct.logged_in is False
    assert engine.is_session_expired(acct) is True


def test_touch_and_logout_ignore_missing_account(engine):
    engine.touch(None)
    engine.logout(None)
    assert engine.get_audit() == ()


def test_engine_logs_outcomes_without_secrets(directory, clock):
    log = _RecordingLogger()
    eng = AuthEngine(directory, max_attempts=1, session_timeout_seconds=60, now=clock, logger=log)
    eng.login("alice", "hunter2")
    eng.login("bob", "s3cr3t-guess")
    levels = [lvl for lvl, _ in log.lines]
    assert levels == ["info", "warning"]
    assert all("hunter2" not in line and "s3cr3t-guess" not in line for _, line in log.lines)


def test_shared_audit_log_is_used(directory):
    audit = AuditLog()
    eng = AuthEngine(directory, max_attempts=3, session_timeout_seconds=60, audit=audit)
    eng.login("alice", "hunter2")
    assert list(audit) == ["SUCCESS:alice"]


def test_concurrent_failures_lock_exactly_once():
    d = AccountDirectory()
    d.insert("target", "right", AccountStatus.ACTIVE, Role.COLONY_RESIDENT)
    eng = AuthEngine(d, max_attempts=5, session_timeout_seconds=60)
    barrier = threading.Barrier(20)

    def worker():
        barrier.wait()
        eng.login("target", "wrong")

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    audit = eng.get_audit()
    assert audit.count("LOCKED:target") == 1
    attempts = [line for line in audit if line.startswith("FAIL bad-password:target")]
    assert attempts == [f"FAIL bad-password:target:attempt={n}" for n in range(1, 6)]
    assert audit.index("LOCKED:target") == 5
    assert d.lookup("target").failed_attempts == 5
    assert audit.count("FAIL locked:target") == 15


def test_unknown_identifiers_do_not_allocate_account_locks(engine):
    for i in range(2000):
        assert engine.login(f"ghost{i}", "x").failure == LoginFailure.UNKNOWN_ACCOUNT
    assert len(engine._key_locks) == 0
    assert len(engine.get_audit()) == 2000

    engine.login("alice", "hunter2")
    engine.login("ALICE ", "hunter2")
    assert list(engine._key_locks) == ["alice"]


def test_failing_audit_sink_does_not_escape_lockout(directory, clock):
    written = []

    def flaky_sink(line):
        if len(written) >= 2:
            raise OSError("disk full")
        written.append(line)

    audit = AuditLog(sink=flaky_sink)
    eng = AuthEngine(directory, max_attempts=3, session_timeout_seconds=900, audit=audit, now=clock)
    results = [eng.login("alice", "wrong") for _ in range(3)]

    assert results[-1].locked_out is True
    assert directory.lookup("alice").status == AccountStatus.LOCKED
    assert eng.get_audit()[-2:] == ("FAIL bad-password:alice:attempt=3", "LOCKED:alice")
    assert eng.get_last_error() == "account locked after max attempts: alice"
    assert written == ["FAIL bad-password:alice:attempt=1", "FAIL bad-password:alice:attempt=2"]
    assert audit.sink_failures == 2
