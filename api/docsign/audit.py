import logging
from typing import Optional

from sqlmodel import Session, select

from . import db
from .models import AuditLogEntry
from .utils import canonical_json, sha256_bytes

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


def write_audit_event(
    document_id: int,
    actor: str,
    action: str,
    meta: Optional[dict] = None,
    ip: Optional[str] = None,
    ua: Optional[str] = None,
) -> Optional[AuditLogEntry]:
    """Append an audit entry in its own session.

    Failures are logged and swallowed so the calling request never fails
    because the audit trail could not be written.
    """
    try:
        with Session(db.engine) as session:
            last = session.exec(
                select(AuditLogEntry)
                .where(AuditLogEntry.document_id == document_id)
                .order_by(AuditLogEntry.id.desc())
            ).first()
            prev_hash = last.hash if last and last.hash else GENESIS_HASH
            payload = {"actor": actor, "action": action, "meta": meta or {}}
            entry = AuditLogEntry(
                document_id=document_id,
                actor=actor,
                action=action,
                meta_json=canonical_json(payload),
                prev_hash=prev_hash,
                ip=ip,
                ua=ua,
            )
            entry.hash = sha256_bytes((prev_hash + entry.meta_json).encode())
            session.add(entry)
            session.commit()
            session.refresh(entry)
            return entry
    except Exception:
        logger.exception("failed to write audit event %s for document %s", action, document_id)
        return None


def verify_chain(entries) -> bool:
    prev_hash = GENESIS_HASH
    for entry in entries:
        if entry.prev_hash != prev_hash:
            return False
        if entry.hash != sha256_bytes((prev_hash + entry.meta_json).encode()):
            return False
        prev_hash = entry.hash
    return True
