from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException

from docsign.gate import is_expired, issue_signing_token, resolve_signing_token
from docsign.models import Document, DocumentVersion
from docsign.versions import (
    allocate_version,
    close_version,
    ensure_mutable,
    list_versions,
    overwrite_draft,
    version_fields,
)


def new_document(session, **overrides):
    doc = Document(owner_id=1, name="Lease", original_filename="lease.pdf", **overrides)
    session.add(doc)
    session.flush()
    return doc


def allocate(session, doc, key="v.pdf", fields=None):
    return allocate_version(
        session,
        doc,
        s3_key=key,
        sha256="abc",
        size=10,
        page_count=1,
        fields=fields or [],
        change_log="upload",
    )


def test_allocating_supersedes_previous_draft(db_session):
    doc = new_document(db_session)
    first = allocate(db_session, doc, "v1.pdf")
    second = allocate(db_session, doc, "v2.pdf", fields=[{"id": "f1"}])

    assert (first.version, first.label) == (1, "final")
    assert (second.version, second.label) == (2, "draft")
    assert doc.current_version == 2
    assert version_fields(second) == [{"id": "f1"}]
    assert [v.version for v in list_versions(db_session, doc.id)] == [1, 2]


def test_final_versions_are_never_overwritten(db_session):
    doc = new_document(db_session)
    version = allocate(db_session, doc)

    overwrite_draft(version, fields=[{"id": "sig"}], change_log="edit")
    assert version_fields(version) == [{"id": "sig"}]
    assert version.change_log == "edit"

    assert close_version(version) is True
    assert close_version(version) is False
    with pytest.raises(HTTPException) as exc:
        overwrite_draft(version, fields=[])
    assert exc.value.status_code == 409
    assert version.label == "final"


def test_completed_documents_cannot_get_new_versions(db_session):
    doc = new_document(db_session, status="completed")
    with pytest.raises(HTTPException) as exc:
        allocate(db_session, doc)
    assert exc.value.status_code == 409

    with pytest.raises(HTTPException):
        ensure_mutable(new_document(db_session, completed_at=datetime.utcnow()))
    ensure_mutable(new_document(db_session, status="rejected"))


def test_signing_token_is_issued_once(db_session):
    doc = new_document(db_session)
    version = allocate(db_session, doc)
    token = issue_signing_token(version)
    assert token
    assert issue_signing_token(version) == token

    other = allocate(db_session, doc, "v2.pdf")
    assert issue_signing_token(other) != token


def test_expiry_is_optional():
    open_ended = DocumentVersion(document_id=1, version=1, s3_key="k")
    assert not is_expired(open_ended)

    now = datetime.utcnow()
    dated = DocumentVersion(document_id=1, version=1, s3_key="k", expires_at=now + timedelta(days=1))
    assert not is_expired(dated, now)
    assert is_expired(dated, now + timedelta(days=2))


def test_resolve_signing_token_errors(db_session):
    doc = new_document(db_session, status="sent")
    version = allocate(db_session, doc)
    token = issue_signing_token(version)
    db_session.add(version)
    db_session.commit()

    with pytest.raises(HTTPException) as missing:
        resolve_signing_token(db_session, None)
    assert missing.value.status_code == 400

    with pytest.raises(HTTPException) as bad:
        resolve_signing_token(db_session, token[:-2])
    assert bad.value.status_code == 404

    found_doc, found_version = resolve_signing_token(db_session, token)
    assert (found_doc.id, found_version.id) == (doc.id, version.id)

    doc.status = "voided"
    db_session.add(doc)
    db_session.commit()
    with pytest.raises(HTTPException) as gone:
        resolve_signing_token(db_session, token)
    assert gone.value.status_code == 410
