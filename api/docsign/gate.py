"""Signing token gate.

A signing token is minted once per version and stored on it. Recipients
reach a document only through that token, so every token-based route goes
through ``resolve_signing_token``.
"""
import secrets
from datetime import datetime
from typing import Optional, Tuple

from fastapi import HTTPException
from itsdangerous import BadData
from sqlmodel import Session, select

from .models import Document, DocumentVersion
from .status import DocumentStatus
from .utils import make_token, read_token


def issue_signing_token(version: DocumentVersion) -> str:
    if not version.signing_token:
        version.signing_token = make_token({
            "document_id": version.document_id,
            "version": version.version,
            "nonce": secrets.token_hex(8),
        })
    return version.signing_token


def is_expired(version: DocumentVersion, now: Optional[datetime] = None) -> bool:
    if not version.expires_at:
        return False
    return (now or datetime.utcnow()) > version.expires_at


def resolve_signing_token(session: Session, token: Optional[str]) -> Tuple[Document, DocumentVersion]:
    if not token:
        raise HTTPException(400, "Token is required")
    try:
        claims = read_token(token)
    except BadData:
        raise HTTPException(404, "Invalid or expired signing link")
    version = session.exec(
        select(DocumentVersion).where(DocumentVersion.signing_token == token)
    ).first()
    if not version or version.document_id != claims.get("document_id"):
        raise HTTPException(404, "Invalid or expired signing link")
    doc = session.get(Document, version.document_id)
    if not doc:
        raise HTTPException(404, "Invalid or expired signing link")
    if doc.deleted_at or doc.status in (DocumentStatus.TRASHED, DocumentStatus.VOIDED):
        raise HTTPException(410, "This signing link is no longer active")
    if is_expired(version):
        raise HTTPException(410, "Document has expired")
    return doc, version
