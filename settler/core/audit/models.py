from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuditRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    seq: int
    ts: str
    entry: str


class IntegrityReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool
    checked: int
    broken_at_line: Optional[int] = None
    message: str = ""
    head_hash: Optional[str] = None
