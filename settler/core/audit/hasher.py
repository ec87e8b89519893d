from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Iterable, Optional, Tuple

from settler.core.audit.models import IntegrityReport

GENESIS_HASH = "0" * 64
CHAIN_FIELDS = ("prev_hash", "hash")


def _canonical(payload: Dict[str, Any]) -> bytes:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")


def link_hash(prev_hash: str, payload: Dict[str, Any]) -> str:
    """sha256 over the previous link and the canonical payload."""
    return hashlib.sha256(prev_hash.encode("utf-8") + b"\n" + _canonical(payload)).hexdigest()


def seal(payload: Dict[str, Any], prev_hash: str) -> Dict[str, Any]:
    return {**payload, "prev_hash": prev_hash, "hash": link_hash(prev_hash, payload)}


def verify_chain(records: Iterable[Tuple[int, Optional[Dict[str, Any]]]]) -> IntegrityReport:
    """
    Walk (line_number, record) pairs from the genesis link. A record of None
    marks a line that could not be parsed.
    """
    prev = GENESIS_HASH
    checked = 0
    for lineno, rec in records:
        if rec is None:
            return IntegrityReport(ok=False, checked=checked, broken_at_line=lineno, message="corrupt_json")
        if rec.get("prev_hash") != prev:
            return IntegrityReport(ok=False, checked=checked, broken_at_line=lineno, message="chain_broken")
        payload = {k: v for k, v in rec.items() if k not in CHAIN_FIELDS}
        if link_hash(prev, payload) != rec.get("hash"):
            return IntegrityReport(ok=False, checked=checked, broken_at_line=lineno, message="hash_mismatch")
        prev = str(rec["hash"])
        checked += 1
    return IntegrityReport(ok=True, checked=checked, message="ok" if checked else "empty", head_hash=prev)
