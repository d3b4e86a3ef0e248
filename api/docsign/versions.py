import json
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from sqlmodel import Session, select

from .models import Document, DocumentVersion
from .status import DocumentStatus, VersionLabel


def list_versions(session: Session, document_id: int) -> List[DocumentVersion]:
    return session.exec(
        select(DocumentVersion)
        .where(DocumentVersion.document_id == document_id)
        .order_by(DocumentVersion.version)
    ).all()


def get_version(session: Session, document_id: int, version: int) -> Optional[DocumentVersion]:
    return session.exec(
        select(DocumentVersion).where(
            DocumentVersion.document_id == document_id,
            DocumentVersion.version == version,
        )
    ).first()


def current_version(session: Session, doc: Document) -> Optional[DocumentVersion]:
    return get_version(session, doc.id, doc.current_version)


def latest_version(session: Session, document_id: int) -> Optional[DocumentVersion]:
    return session.exec(
        select(DocumentVersion)
        .where(DocumentVersion.document_id == document_id)
        .order_by(DocumentVersion.version.desc())
    ).first()


def ensure_mutable(doc: Document):
    if doc.status == DocumentStatus.COMPLETED or doc.completed_at:
        raise HTTPException(409, "Completed documents are immutable. Create a new document to modify.")


def allocate_version(
    session: Session,
    doc: Document,
    *,
    s3_key: str,
    sha256: str,
    size: int,
    page_count: int,
    fields: list,
    change_log: str,
) -> DocumentVersion:
    """Append version N+1 as the document's working draft."""
    ensure_mutable(doc)
    previous = latest_version(session, doc.id)
    if previous and previous.label == VersionLabel.DRAFT:
        # the open draft is superseded; it can never become a draft again
        previous.label = VersionLabel.FINAL.value
        previous.updated_at = datetime.utcnow()
        session.add(previous)
    number = (previous.version + 1) if previous else 1
    version = DocumentVersion(
        document_id=doc.id,
        version=number,
        label=VersionLabel.DRAFT.value,
        s3_key=s3_key,
        sha256=sha256,
        size=size,
        page_count=page_count,
        fields_json=json.dumps(fields),
        change_log=change_log,
    )
    session.add(version)
    doc.current_version = number
    doc.updated_at = datetime.utcnow()
    session.add(doc)
    session.flush()
    return version


def overwrite_draft(
    version: DocumentVersion,
    *,
    s3_key: Optional[str] = None,
    sha256: Optional[str] = None,
    size: Optional[int] = None,
    page_count: Optional[int] = None,
    fields: Optional[list] = None,
    change_log: Optional[str] = None,
):
    if version.label != VersionLabel.DRAFT:
        raise HTTPException(409, f"version {version.version} is final and cannot be overwritten")
    if s3_key is not None:
        version.s3_key = s3_key
        version.sha256 = sha256
        version.size = size or 0
        version.page_count = page_count or 0
    if fields is not None:
        version.fields_json = json.dumps(fields)
    if change_log:
        version.change_log = change_log
    version.updated_at = datetime.utcnow()


def close_version(version: DocumentVersion) -> bool:
    """Move a draft to final. Returns False when it was already final."""
    if version.label == VersionLabel.FINAL:
        return False
    version.label = VersionLabel.FINAL.value
    version.updated_at = datetime.utcnow()
    return True


def version_fields(version: DocumentVersion) -> list:
    try:
        return json.loads(version.fields_json or "[]")
    except json.JSONDecodeError:
        return []


def serialize_version(version: DocumentVersion) -> dict:
    return {
        "version": version.version,
        "label": version.label,
        "sha256": version.sha256,
        "size": version.size,
        "page_count": version.page_count,
        "fields": version_fields(version),
        "change_log": version.change_log,
        "sent_at": version.sent_at,
        "expires_at": version.expires_at,
        "created_at": version.created_at,
        "updated_at": version.updated_at,
    }
