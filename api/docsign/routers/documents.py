import json
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile, status
from minio.error import S3Error
from pydantic import TypeAdapter, ValidationError
from sqlmodel import Session, func, select

from ..audit import write_audit_event
from ..auth import AccessContext, require_user
from ..config import DEFAULT_EXPIRY_DAYS, WEB_BASE_URL
from ..db import get_session
from ..email import send_email, signing_request_message
from ..gate import issue_signing_token
from ..models import AuditLogEntry, Document, Recipient, User
from ..retention import purge_document
from ..schemas import DocumentIds, DocumentSend, FieldPlacement, RecipientIn
from ..sealing import count_pages
from ..status import (
    DocumentStatus,
    RecipientStatus,
    VersionLabel,
    display_status,
    resolve_status,
    restored_status,
)
from ..storage import get_bytes, put_bytes, version_key
from ..utils import client_context, sha256_bytes
from ..versions import (
    allocate_version,
    close_version,
    current_version,
    ensure_mutable,
    get_version,
    list_versions,
    overwrite_draft,
    serialize_version,
    version_fields,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_fields_adapter = TypeAdapter(List[FieldPlacement])
_recipients_adapter = TypeAdapter(List[RecipientIn])

# ---------- helpers ----------

def _get_owned(session: Session, document_id: int, ctx: AccessContext) -> Document:
    doc = session.get(Document, document_id)
    if not doc or doc.owner_id != ctx.user_id:
        raise HTTPException(404, "Document not found")
    return doc

def _recipients(session: Session, document_id: int) -> List[Recipient]:
    return session.exec(
        select(Recipient)
        .where(Recipient.document_id == document_id)
        .order_by(Recipient.routing_order, Recipient.id)
    ).all()

def _serialize_recipient(r: Recipient) -> dict:
    return {
        "id": r.id,
        "email": r.email,
        "name": r.name,
        "role": r.role,
        "status": r.status,
        "routing_order": r.routing_order,
        "viewed_at": r.viewed_at,
        "signed_at": r.signed_at,
        "signed_version": r.signed_version,
        "rejected_at": r.rejected_at,
        "rejection_reason": r.rejection_reason,
    }

def _serialize_document(doc: Document, recipients: List[Recipient], versions=None, status_value=None) -> dict:
    data = {
        "id": doc.id,
        "owner_id": doc.owner_id,
        "name": doc.name,
        "original_filename": doc.original_filename,
        "current_version": doc.current_version,
        "status": status_value or doc.status,
        "signing_mode": doc.signing_mode,
        "deleted_at": doc.deleted_at,
        "status_before_delete": doc.status_before_delete,
        "completed_at": doc.completed_at,
        "sha256_final": doc.sha256_final,
        "derived_from_document_id": doc.derived_from_document_id,
        "derived_from_version": doc.derived_from_version,
        "created_at": doc.created_at,
        "updated_at": doc.updated_at,
        "recipients": [_serialize_recipient(r) for r in recipients],
    }
    if versions is not None:
        data["versions"] = [serialize_version(v) for v in versions]
    return data

def _parse_json_form(raw: Optional[str], adapter: TypeAdapter, label: str):
    if raw is None or raw == "":
        return None
    try:
        return adapter.validate_json(raw)
    except ValidationError as exc:
        raise HTTPException(400, f"Invalid {label}: {exc.errors()[0].get('msg')}")

def _read_pdf(data: bytes) -> int:
    if not data:
        raise HTTPException(400, "No file uploaded")
    try:
        return count_pages(data)
    except ValueError:
        raise HTTPException(400, "Uploaded file is not a valid PDF")

def _replace_recipients(session: Session, doc: Document, incoming: List[RecipientIn]) -> List[Recipient]:
    for existing in _recipients(session, doc.id):
        session.delete(existing)
    created = []
    for idx, r in enumerate(incoming):
        recipient = Recipient(
            document_id=doc.id,
            email=r.email.strip(),
            name=r.name.strip(),
            role=r.role,
            routing_order=r.routing_order or idx + 1,
            status=RecipientStatus.PENDING.value,
        )
        session.add(recipient)
        created.append(recipient)
    session.flush()
    return created

def _trash(doc: Document) -> bool:
    if doc.deleted_at is not None:
        return False
    doc.status_before_delete = doc.status
    doc.status = DocumentStatus.TRASHED.value
    doc.deleted_at = datetime.utcnow()
    doc.updated_at = doc.deleted_at
    return True

def signing_link(token: str, recipient_id: int) -> str:
    return f"{WEB_BASE_URL}/sign?token={token}&recipient={recipient_id}"

def notify_recipients(doc: Document, owner: Optional[User], token: str, recipients, subject=None, message=None):
    """Email every recipient a signing link; returns the failures instead of raising."""
    owner_name = (owner.name if owner else None) or "Your contact"
    failures = []
    for r in recipients:
        subject_line, text_body, html_body = signing_request_message(
            r.name, r.role, doc.name, signing_link(token, r.id), owner_name, subject, message
        )
        try:
            send_email(
                r.email,
                subject_line,
                text_body,
                html_body=html_body,
                reply_to=owner.email if owner else None,
            )
        except Exception as exc:
            logger.warning("signing request email to %s failed for document %s: %s", r.email, doc.id, exc)
            failures.append({"id": r.id, "email": r.email, "reason": str(exc) or exc.__class__.__name__})
    return failures

# ---------- routes ----------

@router.get("")
def list_documents(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=200),
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    conditions = [Document.owner_id == ctx.user_id, Document.deleted_at.is_(None)]
    if status_filter and status_filter != "all":
        conditions.append(Document.status == status_filter)
    stmt = select(Document).where(*conditions).order_by(Document.updated_at.desc(), Document.id.desc())
    if limit is not None:
        stmt = stmt.offset((page - 1) * limit).limit(limit)
    documents = session.exec(stmt).all()
    total = session.exec(select(func.count()).select_from(Document).where(*conditions)).one()
    return {
        "documents": [_serialize_document(doc, _recipients(session, doc.id)) for doc in documents],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": -(-total // limit),
        } if limit else None,
    }

@router.get("/trash")
def list_trash(
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    documents = session.exec(
        select(Document)
        .where(Document.owner_id == ctx.user_id, Document.deleted_at.is_not(None))
        .order_by(Document.deleted_at.desc())
    ).all()
    results = []
    for doc in documents:
        recipients = _recipients(session, doc.id)
        results.append(_serialize_document(doc, recipients, status_value=display_status(doc, recipients).value))
    return results

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_document(
    request: Request,
    file: UploadFile = File(...),
    name: Optional[str] = Form(default=None),
    fields: Optional[str] = Form(default=None),
    recipients: Optional[str] = Form(default=None),
    change_log: Optional[str] = Form(default=None),
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    data = await file.read()
    page_count = _read_pdf(data)
    placements = _parse_json_form(fields, _fields_adapter, "fields") or []
    draft_recipients = _parse_json_form(recipients, _recipients_adapter, "recipients") or []
    filename = file.filename or "document.pdf"

    doc = Document(owner_id=ctx.user_id, name=(name or filename).strip(), original_filename=filename)
    session.add(doc)
    session.flush()
    key = version_key(ctx.user_id, doc.id, 1, filename)
    put_bytes(key, data, content_type=file.content_type or "application/pdf")
    allocate_version(
        session,
        doc,
        s3_key=key,
        sha256=sha256_bytes(data),
        size=len(data),
        page_count=page_count,
        fields=[p.model_dump() for p in placements],
        change_log=change_log or "Document uploaded",
    )
    _replace_recipients(session, doc, draft_recipients)
    session.commit()
    session.refresh(doc)

    ip, ua = client_context(request)
    write_audit_event(doc.id, ctx.actor, "document_created", {"version": 1, "filename": filename}, ip, ua)
    return _serialize_document(doc, _recipients(session, doc.id), list_versions(session, doc.id))

@router.get("/{document_id}")
def get_document(
    document_id: int,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    return _serialize_document(doc, _recipients(session, doc.id), list_versions(session, doc.id))

@router.get("/{document_id}/pdf")
def download_document_pdf(
    document_id: int,
    version: Optional[int] = Query(default=None, ge=1),
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    record = get_version(session, doc.id, version or doc.current_version)
    if not record:
        raise HTTPException(404, "Version not found")
    try:
        pdf_bytes = get_bytes(record.s3_key)
    except S3Error:
        raise HTTPException(404, "stored file missing for this version")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{doc.original_filename}"'},
    )

@router.put("/{document_id}")
async def save_document(
    document_id: int,
    request: Request,
    file: Optional[UploadFile] = File(default=None),
    name: Optional[str] = Form(default=None),
    fields: Optional[str] = Form(default=None),
    recipients: Optional[str] = Form(default=None),
    change_log: Optional[str] = Form(default=None),
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    ensure_mutable(doc)
    if doc.deleted_at is not None:
        raise HTTPException(409, "Restore the document before editing it")
    current = current_version(session, doc)
    if not current:
        raise HTTPException(404, "Current version data not found")

    data = await file.read() if file is not None else b""
    page_count = _read_pdf(data) if data else None
    placements = _parse_json_form(fields, _fields_adapter, "fields")
    incoming_recipients = _parse_json_form(recipients, _recipients_adapter, "recipients")

    new_name = name.strip() if name else None
    name_changed = bool(new_name) and new_name != doc.name
    content_changed = bool(data) and sha256_bytes(data) != current.sha256
    field_dicts = [p.model_dump() for p in placements] if placements is not None else None
    fields_changed = field_dicts is not None and (
        sorted(field_dicts, key=lambda f: f["id"]) != sorted(version_fields(current), key=lambda f: f.get("id", ""))
    )
    existing_recipients = _recipients(session, doc.id)
    recipients_changed = incoming_recipients is not None and (
        sorted(
            (r.email.strip().lower(), r.name.strip(), r.role, r.routing_order or idx + 1)
            for idx, r in enumerate(incoming_recipients)
        )
        != sorted((r.email.lower(), r.name, r.role, r.routing_order) for r in existing_recipients)
    )
    if recipients_changed and doc.status != DocumentStatus.DRAFT:
        raise HTTPException(409, "Recipients of a sent document can only change by sending it again")

    if not (name_changed or content_changed or fields_changed or recipients_changed):
        return {
            "changed": False,
            "message": "No changes detected. Session maintained.",
            "document": _serialize_document(doc, existing_recipients),
        }

    if current.label == VersionLabel.DRAFT:
        target = current
        created = False
    else:
        target = allocate_version(
            session,
            doc,
            s3_key=current.s3_key,
            sha256=current.sha256,
            size=current.size,
            page_count=current.page_count,
            fields=version_fields(current),
            change_log=change_log or "Document content updated",
        )
        created = True

    key = None
    if content_changed:
        key = version_key(ctx.user_id, doc.id, target.version, file.filename or doc.original_filename)
        put_bytes(key, data, content_type=file.content_type or "application/pdf")
    overwrite_draft(
        target,
        s3_key=key,
        sha256=sha256_bytes(data) if key else None,
        size=len(data) if key else None,
        page_count=page_count,
        fields=field_dicts,
        change_log=change_log,
    )
    session.add(target)
    if name_changed:
        doc.name = new_name
    if recipients_changed:
        _replace_recipients(session, doc, incoming_recipients)
    doc.updated_at = datetime.utcnow()
    session.add(doc)
    session.commit()
    session.refresh(doc)

    ip, ua = client_context(request)
    action = "version_created" if created else "document_saved"
    write_audit_event(doc.id, ctx.actor, action, {"version": doc.current_version}, ip, ua)
    return {
        "changed": True,
        "version_created": created,
        "message": (
            f"Document updated to new version {doc.current_version}."
            if created else f"Document (v{doc.current_version}) overwritten (changes saved)."
        ),
        "document": _serialize_document(doc, _recipients(session, doc.id), list_versions(session, doc.id)),
    }

@router.post("/{document_id}/close")
def close_document_version(
    document_id: int,
    request: Request,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    current = current_version(session, doc)
    if not current:
        raise HTTPException(404, "Current version data not found")
    if not close_version(current):
        return {"closed": False, "message": f"Document version {current.version} was already finalized."}
    session.add(current)
    session.commit()
    ip, ua = client_context(request)
    write_audit_event(doc.id, ctx.actor, "version_closed", {"version": current.version}, ip, ua)
    return {
        "closed": True,
        "message": f"Document version {current.version} finalized. New session required for next edit.",
    }

@router.post("/{document_id}/send")
def send_for_signing(
    document_id: int,
    payload: DocumentSend,
    request: Request,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    ensure_mutable(doc)
    if doc.status == DocumentStatus.VOIDED:
        raise HTTPException(409, "Voided documents cannot be sent")
    if doc.deleted_at is not None:
        raise HTTPException(409, "Restore the document before sending it")
    version = current_version(session, doc)
    if not version:
        raise HTTPException(400, "Document has no version to send")

    signing_mode = payload.signing_mode or doc.signing_mode or "parallel"
    if signing_mode == "sequential" and any(
        r.role == "signer" and r.routing_order is None for r in payload.recipients
    ):
        raise HTTPException(400, "Order is required for sequential signing")

    recipients = _replace_recipients(session, doc, payload.recipients)
    first_order = min((r.routing_order for r in recipients if r.role == "signer"), default=None)
    for r in recipients:
        if signing_mode == "sequential" and r.role == "signer" and r.routing_order != first_order:
            r.status = RecipientStatus.PENDING.value
        else:
            r.status = RecipientStatus.SENT.value
        session.add(r)

    now = datetime.utcnow()
    close_version(version)
    token = issue_signing_token(version)
    version.sent_at = now
    expiry_days = payload.expires_in_days or DEFAULT_EXPIRY_DAYS
    version.expires_at = now + timedelta(days=expiry_days) if expiry_days else None
    session.add(version)
    doc.status = DocumentStatus.SENT.value
    doc.signing_mode = signing_mode
    doc.updated_at = now
    session.add(doc)
    session.commit()

    ip, ua = client_context(request)
    write_audit_event(
        doc.id,
        ctx.actor,
        "document_sent",
        {"version": version.version, "recipients": len(recipients), "signing_mode": signing_mode},
        ip,
        ua,
    )

    # The send is already committed; delivery problems are reported, not rolled back.
    to_notify = [r for r in recipients if r.status == RecipientStatus.SENT]
    owner = session.get(User, ctx.user_id)
    failures = notify_recipients(doc, owner, token, to_notify, payload.subject, payload.message)
    if failures:
        write_audit_event(
            doc.id,
            ctx.actor,
            "email_delivery_issue",
            {"attempted": len(to_notify), "failed": len(failures), "failures": failures},
            ip,
            ua,
        )

    if not failures:
        message = "Document sent for signing"
    elif len(failures) == len(to_notify):
        message = "Document sent, but no notification emails could be delivered."
    else:
        message = f"Document sent, but {len(failures)} notification email(s) failed."
    session.refresh(doc)
    return {
        "message": message,
        "status": doc.status,
        "signing_mode": doc.signing_mode,
        "version": version.version,
        "email_delivery": {
            "attempted": len(to_notify),
            "delivered": len(to_notify) - len(failures),
            "failed": len(failures),
            "failed_recipients": failures,
        },
    }

@router.post("/{document_id}/derive", status_code=status.HTTP_201_CREATED)
def derive_document(
    document_id: int,
    request: Request,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    """Start a new draft from a completed or voided document."""
    source = _get_owned(session, document_id, ctx)
    if source.status not in (DocumentStatus.COMPLETED, DocumentStatus.VOIDED):
        raise HTTPException(409, "Only completed or voided documents can be derived.")
    source_version = current_version(session, source)
    if not source_version:
        raise HTTPException(404, "Current version data not found")
    try:
        data = get_bytes(source_version.s3_key)
    except S3Error:
        raise HTTPException(404, "stored file missing for this version")

    doc = Document(
        owner_id=ctx.user_id,
        name=source.name,
        original_filename=source.original_filename,
        signing_mode=source.signing_mode,
        derived_from_document_id=source.id,
        derived_from_version=source_version.version,
    )
    session.add(doc)
    session.flush()
    key = version_key(ctx.user_id, doc.id, 1, source.original_filename)
    put_bytes(key, data, content_type="application/pdf")
    allocate_version(
        session,
        doc,
        s3_key=key,
        sha256=source_version.sha256,
        size=source_version.size,
        page_count=source_version.page_count,
        fields=version_fields(source_version),
        change_log=f"Derived from {source.status} document {source.id}",
    )
    # same people and order, none of the previous signing state
    for r in _recipients(session, source.id):
        session.add(Recipient(
            document_id=doc.id,
            email=r.email,
            name=r.name,
            role=r.role,
            routing_order=r.routing_order,
            status=RecipientStatus.PENDING.value,
        ))
    session.commit()
    session.refresh(doc)

    ip, ua = client_context(request)
    write_audit_event(
        doc.id, ctx.actor, "document_derived",
        {"source_document_id": source.id, "source_version": source_version.version}, ip, ua,
    )
    return {
        "success": True,
        "document_id": doc.id,
        "derived_from_document_id": source.id,
        "derived_from_version": source_version.version,
        "message": "Derived document created",
        "document": _serialize_document(doc, _recipients(session, doc.id), list_versions(session, doc.id)),
    }

@router.post("/{document_id}/void")
def void_document(
    document_id: int,
    request: Request,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    if doc.status == DocumentStatus.COMPLETED:
        raise HTTPException(409, "Completed documents are immutable.")
    if doc.status == DocumentStatus.VOIDED:
        return {"success": True, "status": doc.status, "document_id": doc.id}
    if doc.deleted_at is not None:
        raise HTTPException(409, "Restore the document before voiding it")
    doc.status = DocumentStatus.VOIDED.value
    doc.updated_at = datetime.utcnow()
    session.add(doc)
    session.commit()
    ip, ua = client_context(request)
    write_audit_event(doc.id, ctx.actor, "document_voided", {}, ip, ua)
    return {"success": True, "status": doc.status, "document_id": doc.id}

@router.post("/{document_id}/reset")
def reset_document(
    document_id: int,
    request: Request,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    ensure_mutable(doc)
    if doc.deleted_at is not None:
        raise HTTPException(409, "Restore the document before resetting it")
    recipients = _recipients(session, doc.id)
    rejected = [r for r in recipients if r.status == RecipientStatus.REJECTED]
    if not rejected:
        return {
            "reset": False,
            "message": "No recipients needed resetting.",
            "document": _serialize_document(doc, recipients),
        }
    for r in rejected:
        r.status = RecipientStatus.SENT.value
        r.rejected_at = None
        r.rejection_reason = None
        session.add(r)
    doc.status = resolve_status(doc, recipients).value
    doc.updated_at = datetime.utcnow()
    session.add(doc)
    session.commit()
    session.refresh(doc)
    ip, ua = client_context(request)
    write_audit_event(doc.id, ctx.actor, "document_reset", {"recipients": [r.id for r in rejected]}, ip, ua)
    return {"reset": True, "document": _serialize_document(doc, _recipients(session, doc.id))}

@router.delete("/{document_id}")
def delete_document(
    document_id: int,
    request: Request,
    permanent: bool = Query(default=False),
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    ip, ua = client_context(request)
    if permanent:
        purge_document(session, doc)
        session.commit()
        write_audit_event(document_id, ctx.actor, "document_purged", {}, ip, ua)
        return {"success": True, "message": "Document deleted permanently"}
    if _trash(doc):
        session.add(doc)
        session.commit()
        write_audit_event(doc.id, ctx.actor, "document_trashed", {"status_before_delete": doc.status_before_delete}, ip, ua)
    return {"success": True, "message": "Document moved to trash"}

@router.post("/bulk-delete")
def bulk_delete_documents(
    payload: DocumentIds,
    request: Request,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    documents = session.exec(
        select(Document).where(Document.id.in_(payload.document_ids), Document.owner_id == ctx.user_id)
    ).all()
    trashed = []
    for doc in documents:
        if _trash(doc):
            session.add(doc)
            trashed.append(doc)
    session.commit()
    ip, ua = client_context(request)
    for doc in trashed:
        write_audit_event(doc.id, ctx.actor, "document_trashed", {"status_before_delete": doc.status_before_delete}, ip, ua)
    if not documents:
        return {"trashed": 0, "message": "No matching documents found to delete"}
    return {"trashed": len(trashed), "message": f"Moved {len(trashed)} document(s) to trash"}

@router.post("/restore")
def restore_documents(
    payload: DocumentIds,
    request: Request,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    documents = session.exec(
        select(Document).where(
            Document.id.in_(payload.document_ids),
            Document.owner_id == ctx.user_id,
            Document.deleted_at.is_not(None),
        )
    ).all()
    restored = []
    for doc in documents:
        recipients = _recipients(session, doc.id)
        doc.status = restored_status(doc, recipients).value
        doc.deleted_at = None
        doc.status_before_delete = None
        doc.updated_at = datetime.utcnow()
        session.add(doc)
        restored.append((doc.id, doc.status))
    session.commit()
    ip, ua = client_context(request)
    for doc_id, doc_status in restored:
        write_audit_event(doc_id, ctx.actor, "document_restored", {"status": doc_status}, ip, ua)
    if not restored:
        return {"restored": 0, "documents": [], "message": "No matching documents found to restore"}
    return {
        "restored": len(restored),
        "documents": [{"id": doc_id, "status": doc_status} for doc_id, doc_status in restored],
        "message": f"Successfully restored {len(restored)} document(s)",
    }

@router.get("/{document_id}/audit")
def list_audit_entries(
    document_id: int,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    entries = session.exec(
        select(AuditLogEntry).where(AuditLogEntry.document_id == doc.id).order_by(AuditLogEntry.id)
    ).all()
    return [
        {
            "id": e.id,
            "actor": e.actor,
            "action": e.action,
            "meta": json.loads(e.meta_json or "{}").get("meta", {}),
            "ip": e.ip,
            "at": e.at,
            "hash": e.hash,
        }
        for e in entries
    ]

@router.get("/{document_id}/final-pdf")
def download_final_pdf(
    document_id: int,
    session: Session = Depends(get_session),
    ctx: AccessContext = Depends(require_user),
):
    doc = _get_owned(session, document_id, ctx)
    if not doc.final_key:
        raise HTTPException(404, "final artifact not found")
    try:
        pdf_bytes = get_bytes(doc.final_key)
    except S3Error:
        raise HTTPException(404, "stored file missing for this document")
    base = doc.name[:-4] if doc.name.lower().endswith(".pdf") else doc.name
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{base} - executed.pdf"'},
    )
