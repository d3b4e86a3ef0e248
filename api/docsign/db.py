import logging

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy import text, inspect
from .config import DATABASE_URL

logger = logging.getLogger(__name__)

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, pool_pre_ping=True, connect_args=_connect_args)

def init_db():
    from .models import User, Document, DocumentVersion, Recipient, AuditLogEntry
    SQLModel.metadata.create_all(engine)
    _ensure_document_columns()
    _ensure_signing_token_unique_index()

def get_session():
    with Session(engine) as session:
        yield session

def _ensure_document_columns():
    inspector = inspect(engine)
    try:
        columns = [col["name"] for col in inspector.get_columns("document")]
    except Exception:
        return
    patches = {
        "status_before_delete": "ALTER TABLE document ADD COLUMN status_before_delete TEXT",
        "signing_mode": "ALTER TABLE document ADD COLUMN signing_mode TEXT DEFAULT 'parallel'",
        "derived_from_document_id": "ALTER TABLE document ADD COLUMN derived_from_document_id INTEGER",
        "derived_from_version": "ALTER TABLE document ADD COLUMN derived_from_version INTEGER",
    }
    missing = [ddl for name, ddl in patches.items() if name not in columns]
    if not missing:
        return
    with engine.begin() as conn:
        for ddl in missing:
            conn.execute(text(ddl))


def _ensure_signing_token_unique_index():
    inspector = inspect(engine)
    try:
        indexes = inspector.get_indexes("documentversion")
    except Exception:
        return
    if any(idx.get("unique") and idx.get("column_names") == ["signing_token"] for idx in indexes):
        return
    with engine.begin() as conn:
        duplicates = conn.execute(
            text(
                "SELECT signing_token FROM documentversion WHERE signing_token IS NOT NULL "
                "GROUP BY signing_token HAVING COUNT(*) > 1"
            )
        ).fetchall()
        if duplicates:
            logger.warning(
                "duplicate signing tokens detected; resolve before enforcing uniqueness: %s",
                ", ".join(row[0] for row in duplicates if row[0]),
            )
            return
        conn.execute(
            text("CREATE UNIQUE INDEX IF NOT EXISTS uq_version_signing_token ON documentversion(signing_token)")
        )
