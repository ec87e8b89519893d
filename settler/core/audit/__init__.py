from settler.core.audit.log import AuditLog, AuditSink, subject_of
from settler.core.audit.models import AuditRecord, IntegrityReport
from settler.core.audit.store_jsonl import AuditJsonlStore, verify_file

__all__ = [
    "AuditJsonlStore",
    "AuditLog",
    "AuditRecord",
    "AuditSink",
    "IntegrityReport",
    "subject_of",
    "verify_file",
]
