from __future__ import annotations

import argparse
import getpass
from typing import Callable, List, Optional

from settler.core.accounts import AccountDirectory
from settler.core.auth import AuthEngine, LoginFailure
from settler.core.config import AuthConfig, load_auth_config, validate_auth_config
from settler.core.errors import ConfigError
from settler.core.logger import setup_logging


def build_config(args: argparse.Namespace) -> AuthConfig:
    cfg = load_auth_config(args.config) if args.config else AuthConfig()
    overrides = {}
    if args.max_attempts is not None:
        overrides["max_attempts"] = args.max_attempts
    if args.timeout_minutes is not None:
        overrides["session_timeout_seconds"] = float(args.timeout_minutes) * 60.0
    if args.audit_jsonl:
        overrides["audit_path"] = args.audit_jsonl
    if not overrides:
        return cfg
    return validate_auth_config({**cfg.model_dump(), **overrides})


def run_session(engine: AuthEngine, account, *, read: Callable[[str], str], write: Callable[[str], None]) -> None:
    """Console loop for a logged-in account: 'status' reports expiry, 'logout' ends, anything else counts as activity."""
    while True:
        cmd = read(f"{account.username}> ").strip().lower()
        if engine.is_session_expired(account):
            write("Session expired. Please log in again.")
            engine.logout(account)
            return
        if cmd in {"logout", "exit", "quit"}:
            engine.logout(account)
            write("Logged out.")
            return
        if cmd == "status":
            expires_at = engine.session_policy.expires_at(account)
            write(f"Role: {account.role.pretty()} | session expires at {expires_at:.0f}")
            continue
        engine.touch(account)


def run_console(
    engine: AuthEngine,
    *,
    read: Callable[[str], str] = input,
    read_secret: Callable[[str], str] = getpass.getpass,
    write: Callable[[str], None] = print,
) -> None:
    write("Settler console. Empty username exits.")
    while True:
        username = read("Username: ")
        if not username.strip():
            return
        res = engine.login(username, read_secret("Password: "))
        if res.ok:
            write(f"Welcome, {res.account.username} ({res.account.role.pretty()}).")
            run_session(engine, res.account, read=read, write=write)
            continue
        if res.failure == LoginFailure.BAD_CREDENTIAL and res.locked_out:
            write(f"Login failed: {res.message}. Contact mission control to unlock.")
        else:
            write(f"Login failed: {res.message}")


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Settler authentication console")
    ap.add_argument("--config", default=None, help="Path to an auth config JSON file.")
    ap.add_argument("--max-attempts", type=int, default=None, help="Failed attempts tolerated before lockout.")
    ap.add_argument("--timeout-minutes", type=float, default=None, help="Session inactivity timeout in minutes.")
    ap.add_argument("--log-dir", default="logs", help="Directory for settler.log.")
    ap.add_argument("--audit-jsonl", default=None, help="Mirror the audit trail to a hash-chained JSONL file.")
    ap.add_argument("--show-audit", action="store_true", help="Print the audit trail on exit.")
    ap.add_argument("--quiet", action="store_true", help="Log to settler.log only (no console warnings).")
    args = ap.parse_args(argv)

    logger = setup_logging(args.log_dir, console=not args.quiet)
    try:
        cfg = build_config(args)
    except ConfigError as e:
        logger.error("startup aborted: %s", e.user_message)
        return 2

    directory = AccountDirectory()
    directory.seed_samples()
    engine = AuthEngine.from_config(directory, cfg)
    logger.info("auth ready: max_attempts=%d timeout=%.0fs accounts=%d", cfg.max_attempts, cfg.session_timeout_seconds, len(directory))

    try:
        run_console(engine)
    except (EOFError, KeyboardInterrupt):
        print()

    if args.show_audit:
        for line in engine.get_audit():
            print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
