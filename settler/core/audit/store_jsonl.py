from __future__ import annotations

import json
import os
import threading
import time
from typing import Any, Dict, Iterator, List, Optional, Tuple

from settler.core.audit.hasher import GENESIS_HASH, seal, verify_chain
from settler.core.audit.models import AuditRecord, IntegrityReport


def _read_records(path: str) -> Iterator[Tuple[int, Optional[Dict[str, Any]]]]:
    if not os.path.exists(path):
        return
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError:
                yield lineno, None
                continue
            yield lineno, obj if isinstance(obj, dict) else None


def verify_file(path: str) -> IntegrityReport:
    """Check an exported chain without opening it for writing (no directories are created)."""
    return verify_chain(_read_records(path))


class AuditJsonlStore:
    """
    Hash-chained JSONL mirror of the audit trail.

    Export only: records are appended as the AuditLog grows and never read back
    into engine state. An existing file is resumed from its last record.
    """

    def __init__(self, *, path: str):
        self.path = path
        self._lock = threading.Lock()
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self._head_hash, self._seq = self._resume()

    def _resume(self) -> Tuple[str, int]:
        last: Optional[Dict[str, Any]] = None
        for _, rec in _read_records(self.path):
            if rec is not None:
                last = rec
        if last is None:
            return GENESIS_HASH, 0
        return str(last.get("hash") or GENESIS_HASH), int(last.get("seq") or 0)

    @property
    def head_hash(self) -> str:
        with self._lock:
            return self._head_hash

    def append(self, entry: str) -> Dict[str, Any]:
        with self._lock:
            seq = self._seq + 1
            rec = AuditRecord(seq=seq, ts=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()), entry=entry)
            stored = seal(rec.model_dump(), self._head_hash)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(stored, ensure_ascii=False) + "\n")
            # chain only advances once the line is on disk
            self._seq = seq
            self._head_hash = str(stored["hash"])
            return stored

    def __call__(self, entry: str) -> None:
        self.append(entry)

    def entries(self) -> List[str]:
        return [str(rec.get("entry", "")) for _, rec in _read_records(self.path) if rec is not None]

    def verify(self) -> IntegrityReport:
        return verify_file(self.path)
