from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field as ORMField

class User(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    email: str = ORMField(index=True, unique=True)
    name: str
    access_token: Optional[str] = ORMField(default=None, index=True, unique=True)
    created_at: datetime = ORMField(default_factory=datetime.utcnow)

class Document(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    owner_id: int = ORMField(index=True)
    name: str
    original_filename: str
    current_version: int = 1
    status: str = "draft"  # draft|sent|viewed|in_progress|completed|rejected|voided|trashed
    signing_mode: str = "parallel"  # parallel|sequential
    deleted_at: Optional[datetime] = None
    status_before_delete: Optional[str] = None
    completed_at: Optional[datetime] = None
    final_key: Optional[str] = None
    sha256_final: Optional[str] = None
    derived_from_document_id: Optional[int] = None
    derived_from_version: Optional[int] = None
    created_at: datetime = ORMField(default_factory=datetime.utcnow)
    updated_at: datetime = ORMField(default_factory=datetime.utcnow)

class DocumentVersion(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    document_id: int = ORMField(index=True)
    version: int
    label: str = "draft"  # draft|final
    s3_key: str
    sha256: Optional[str] = None
    size: int = 0
    page_count: int = 0
    fields_json: str = "[]"
    change_log: str = ""
    signing_token: Optional[str] = ORMField(default=None, index=True, unique=True)
    sent_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: datetime = ORMField(default_factory=datetime.utcnow)
    updated_at: datetime = ORMField(default_factory=datetime.utcnow)

class Recipient(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    document_id: int = ORMField(index=True)
    email: str
    name: str
    role: str = "signer"  # signer|viewer
    status: str = "pending"  # pending|sent|viewed|signed|rejected
    routing_order: int = 1
    viewed_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    signed_version: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    values_json: str = "{}"

class AuditLogEntry(SQLModel, table=True):
    id: Optional[int] = ORMField(default=None, primary_key=True)
    document_id: int = ORMField(index=True)
    actor: str  # system|user:<id>|recipient:<id>
    action: str
    meta_json: str = "{}"
    ip: Optional[str] = None
    ua: Optional[str] = None
    at: datetime = ORMField(default_factory=datetime.utcnow)
    prev_hash: Optional[str] = None
    hash: Optional[str] = None
