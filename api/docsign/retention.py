import logging
from datetime import datetime
from typing import List

from sqlmodel import Session, select

from .models import Document, DocumentVersion, Recipient
from .storage import delete_object

logger = logging.getLogger(__name__)


def _stored_keys(session: Session, doc: Document) -> List[str]:
    keys = {v.s3_key for v in session.exec(
        select(DocumentVersion).where(DocumentVersion.document_id == doc.id)
    ).all() if v.s3_key}
    if doc.final_key:
        keys.add(doc.final_key)
    return sorted(keys)


def purge_document(session: Session, doc: Document):
    """Delete a document, its versions, recipients and stored objects.

    Audit entries are kept. The caller commits.
    """
    for key in _stored_keys(session, doc):
        try:
            delete_object(key)
        except Exception as exc:
            logger.warning("failed to delete stored object %s for document %s: %s", key, doc.id, exc)
    for version in session.exec(select(DocumentVersion).where(DocumentVersion.document_id == doc.id)).all():
        session.delete(version)
    for recipient in session.exec(select(Recipient).where(Recipient.document_id == doc.id)).all():
        session.delete(recipient)
    session.delete(doc)


def purge_trashed(session: Session, older_than: datetime, dry_run: bool = False) -> List[int]:
    """Purge documents trashed before ``older_than``; returns the affected ids."""
    documents = session.exec(
        select(Document).where(Document.deleted_at.is_not(None), Document.deleted_at < older_than)
    ).all()
    ids = [doc.id for doc in documents]
    if dry_run:
        return ids
    for doc in documents:
        purge_document(session, doc)
    session.commit()
    logger.info("purged %d trashed document(s) older than %s", len(ids), older_than.isoformat())
    return ids
