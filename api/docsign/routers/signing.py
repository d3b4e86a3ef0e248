import json
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from minio.error import S3Error
from sqlmodel import Session, select

from ..audit import write_audit_event
from ..db import get_session
from ..email import completion_message, send_email
from ..gate import resolve_signing_token
from ..models import Document, DocumentVersion, Recipient, User
from ..schemas import RejectSubmit, SignSubmit
from ..sealing import decode_signature_image, seal_pdf
from ..status import (
    SIGNABLE_STATUSES,
    DocumentStatus,
    RecipientStatus,
    apply_status,
    is_recipient_turn,
    next_sequential_order,
)
from ..storage import final_key, get_bytes, put_bytes
from ..utils import client_context
from ..versions import version_fields
from .documents import notify_recipients

logger = logging.getLogger(__name__)

router = APIRouter()

# ---------- helpers ----------

def _recipients(session: Session, document_id: int) -> List[Recipient]:
    return session.exec(
        select(Recipient)
        .where(Recipient.document_id == document_id)
        .order_by(Recipient.routing_order, Recipient.id)
    ).all()

def _find_recipient(recipients: List[Recipient], recipient_id: int) -> Recipient:
    for r in recipients:
        if r.id == recipient_id:
            return r
    raise HTTPException(404, "Recipient not found")

def _public_recipient(r: Recipient) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "email": r.email,
        "role": r.role,
        "status": r.status,
        "routing_order": r.routing_order,
        "signed_at": r.signed_at,
    }

def _ensure_signable(doc: Document):
    if doc.status not in SIGNABLE_STATUSES:
        raise HTTPException(409, f"Document is not open for signing (status: {doc.status})")

def _fields_for(version: DocumentVersion, recipient: Recipient) -> list:
    email = recipient.email.lower()
    return [
        f for f in version_fields(version)
        if not f.get("recipient_email") or f["recipient_email"].lower() == email
    ]

def _collect_values(version: DocumentVersion, recipients: List[Recipient]) -> dict:
    placements = {f["id"]: f for f in version_fields(version)}
    combined = {}
    for r in recipients:
        try:
            values = json.loads(r.values_json or "{}")
        except json.JSONDecodeError:
            values = {}
        for field_id, value in values.items():
            placement = placements.get(field_id)
            if not placement:
                continue
            combined[field_id] = {**placement, "value": value}
    return combined

def _seal(doc: Document, version: DocumentVersion, recipients: List[Recipient]) -> bytes:
    original = get_bytes(version.s3_key)
    signers = [
        f"{r.name} <{r.email}> signed {r.signed_at.isoformat()}Z"
        for r in recipients if r.role == "signer" and r.signed_at
    ]
    final_pdf, _audit_json, sha_final = seal_pdf(
        original, doc.id, version.version, _collect_values(version, recipients), signers
    )
    key = final_key(doc.owner_id, doc.id)
    put_bytes(key, final_pdf, content_type="application/pdf")
    doc.final_key = key
    doc.sha256_final = sha_final
    doc.completed_at = datetime.utcnow()
    doc.status = DocumentStatus.COMPLETED.value
    return final_pdf

def _send_completion(doc: Document, recipients: List[Recipient], final_pdf: bytes, owner: Optional[User]):
    subject, text_body, html_body = completion_message(doc.name, doc.sha256_final)
    base = doc.name[:-4] if doc.name.lower().endswith(".pdf") else doc.name
    attachments = [{
        "filename": f"{base} - executed.pdf",
        "content": final_pdf,
        "maintype": "application",
        "subtype": "pdf",
    }]
    for r in recipients:
        try:
            send_email(
                r.email,
                subject,
                text_body,
                html_body=html_body,
                attachments=attachments,
                reply_to=owner.email if owner else None,
            )
        except Exception as exc:
            logger.warning("completion email to %s failed for document %s: %s", r.email, doc.id, exc)

# ---------- routes ----------

@router.get("")
def load_signing_document(
    request: Request,
    token: Optional[str] = Query(default=None),
    recipient: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    doc, version = resolve_signing_token(session, token)
    recipients = _recipients(session, doc.id)
    current = _find_recipient(recipients, recipient) if recipient is not None else None

    completed = False
    final_pdf = None
    if current and current.status == RecipientStatus.SENT:
        current.status = RecipientStatus.VIEWED.value
        current.viewed_at = datetime.utcnow()
        session.add(current)
        if doc.status in SIGNABLE_STATUSES:
            if apply_status(doc, recipients) == DocumentStatus.COMPLETED:
                # viewer-only documents complete once everyone has looked
                final_pdf = _seal(doc, version, recipients)
                completed = True
            session.add(doc)
        session.commit()
        ip, ua = client_context(request)
        write_audit_event(doc.id, f"recipient:{current.id}", "recipient_viewed", {"version": version.version}, ip, ua)
        if completed:
            write_audit_event(doc.id, "system", "document_completed", {"sha256_final": doc.sha256_final})
            _send_completion(doc, recipients, final_pdf, session.get(User, doc.owner_id))

    return {
        "document": {
            "id": doc.id,
            "name": doc.name,
            "status": doc.status,
            "signing_mode": doc.signing_mode,
            "version": version.version,
            "page_count": version.page_count,
            "expires_at": version.expires_at,
            "fields": _fields_for(version, current) if current else version_fields(version),
            "recipients": [_public_recipient(r) for r in recipients],
            "current_recipient": _public_recipient(current) if current else None,
            "completed": doc.completed_at is not None,
        }
    }

@router.get("/pdf")
def get_signing_pdf(token: Optional[str] = Query(default=None), session: Session = Depends(get_session)):
    doc, version = resolve_signing_token(session, token)
    try:
        pdf_bytes = get_bytes(version.s3_key)
    except S3Error:
        raise HTTPException(404, "PDF not found")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{doc.original_filename}"',
            "Cache-Control": "no-cache, no-store, must-revalidate",
        },
    )

@router.post("/sign")
def sign_document(
    payload: SignSubmit,
    request: Request,
    token: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
):
    doc, version = resolve_signing_token(session, token)
    _ensure_signable(doc)
    recipients = _recipients(session, doc.id)
    signer = _find_recipient(recipients, payload.recipient_id)
    if signer.role != "signer":
        raise HTTPException(400, "Only signers can sign this document")
    if signer.status == RecipientStatus.SIGNED:
        raise HTTPException(409, "Recipient has already signed")
    if signer.status == RecipientStatus.REJECTED:
        raise HTTPException(409, "Recipient has rejected this document")
    if doc.signing_mode == "sequential" and not is_recipient_turn(signer, recipients):
        raise HTTPException(409, "It is not this recipient's turn to sign")

    own_fields = _fields_for(version, signer)
    values = {}
    for field in own_fields:
        value = payload.values.get(field["id"])
        if isinstance(value, dict):
            value = value.get("value")
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        values[field["id"]] = value
    missing = [f["id"] for f in own_fields if f.get("required") and f["id"] not in values]
    if missing:
        raise HTTPException(400, f"Missing required fields: {', '.join(missing)}")
    invalid = []
    for field in own_fields:
        if field.get("type") in ("signature", "initials") and field["id"] in values:
            try:
                decode_signature_image(values[field["id"]])
            except ValueError:
                invalid.append(field["id"])
    if invalid:
        raise HTTPException(400, f"Invalid signature image for fields: {', '.join(invalid)}")

    now = datetime.utcnow()
    signer.values_json = json.dumps(values)
    signer.status = RecipientStatus.SIGNED.value
    signer.signed_at = now
    signer.signed_version = version.version
    session.add(signer)

    promoted = []
    if doc.signing_mode == "sequential":
        next_order = next_sequential_order(recipients)
        for r in recipients:
            if r.role == "signer" and r.status == RecipientStatus.PENDING and r.routing_order == next_order:
                r.status = RecipientStatus.SENT.value
                session.add(r)
                promoted.append(r)

    final_pdf = None
    if apply_status(doc, recipients) == DocumentStatus.COMPLETED:
        final_pdf = _seal(doc, version, recipients)
    doc.updated_at = now
    session.add(doc)
    session.commit()

    ip, ua = client_context(request)
    write_audit_event(
        doc.id, f"recipient:{signer.id}", "recipient_signed",
        {"version": version.version, "fields": sorted(values)}, ip, ua,
    )
    owner = session.get(User, doc.owner_id)
    if final_pdf is not None:
        write_audit_event(doc.id, "system", "document_completed", {"sha256_final": doc.sha256_final})
        _send_completion(doc, recipients, final_pdf, owner)
    elif promoted:
        notify_recipients(doc, owner, version.signing_token, promoted)

    return {
        "ok": True,
        "status": doc.status,
        "completed": final_pdf is not None,
        "sha256_final": doc.sha256_final,
        "waiting_on": len([r for r in recipients if r.role == "signer" and r.status != RecipientStatus.SIGNED]),
    }

@router.post("/reject")
def reject_document(
    payload: RejectSubmit,
    request: Request,
    token: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
):
    doc, version = resolve_signing_token(session, token)
    recipients = _recipients(session, doc.id)
    recipient = _find_recipient(recipients, payload.recipient_id)
    if recipient.status == RecipientStatus.REJECTED:
        return {"ok": True, "status": doc.status}
    _ensure_signable(doc)
    if recipient.role != "signer":
        raise HTTPException(400, "Only signers can reject this document")
    if recipient.status == RecipientStatus.SIGNED:
        raise HTTPException(409, "Recipient has already signed")

    recipient.status = RecipientStatus.REJECTED.value
    recipient.rejected_at = datetime.utcnow()
    recipient.rejection_reason = (payload.reason or "").strip() or None
    session.add(recipient)
    apply_status(doc, recipients)
    doc.updated_at = recipient.rejected_at
    session.add(doc)
    session.commit()

    ip, ua = client_context(request)
    write_audit_event(
        doc.id, f"recipient:{recipient.id}", "recipient_rejected",
        {"version": version.version, "reason": recipient.rejection_reason}, ip, ua,
    )
    return {"ok": True, "status": doc.status}

@router.get("/final-pdf")
def get_signed_final_pdf(token: Optional[str] = Query(default=None), session: Session = Depends(get_session)):
    doc, _version = resolve_signing_token(session, token)
    if not doc.final_key:
        raise HTTPException(404, "final artifact not ready")
    try:
        pdf_bytes = get_bytes(doc.final_key)
    except S3Error:
        raise HTTPException(404, "stored file missing for this document")
    return Response(content=pdf_bytes, media_type="application/pdf")
