import os
from io import BytesIO
from typing import Dict

import pytest
from fastapi.testclient import TestClient
from minio.error import S3Error
from reportlab.pdfgen import canvas
from sqlmodel import SQLModel, Session, create_engine

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ADMIN_ACCESS_TOKEN", "admin-test-token")

from docsign.main import app  # noqa: E402
from docsign import db as db_module  # noqa: E402
from docsign.db import get_session  # noqa: E402
from docsign import storage as storage_module  # noqa: E402
from docsign import email as email_module  # noqa: E402
from docsign import retention as retention_module  # noqa: E402
from docsign.routers import documents as documents_router  # noqa: E402
from docsign.routers import signing as signing_router  # noqa: E402

ADMIN_HEADERS = {"X-Access-Token": os.environ["ADMIN_ACCESS_TOKEN"]}


class MissingObject(S3Error):
    """NoSuchKey stand-in; S3Error's constructor differs across minio releases."""

    def __init__(self, key: str):
        Exception.__init__(self, f"NoSuchKey: /{key}")

    def __str__(self):
        return self.args[0]


class Outbox(list):
    def __init__(self):
        super().__init__()
        self.failing = set()


def make_pdf(text: str = "Hello", pages: int = 1) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=(300, 144))
    for idx in range(pages):
        c.drawString(72, 100, f"{text} {idx + 1}")
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture(scope="session")
def test_engine(tmp_path_factory):
    db_path = tmp_path_factory.mktemp("data") / "test.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    return engine


@pytest.fixture
def setup_db(test_engine):
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def mock_storage(monkeypatch) -> Dict[str, bytes]:
    store: Dict[str, bytes] = {}

    def fake_put_bytes(key: str, data: bytes, content_type: str = "application/octet-stream"):
        store[key] = bytes(data)

    def fake_get_bytes(key: str) -> bytes:
        if key not in store:
            raise MissingObject(key)
        return store[key]

    def fake_delete_object(key: str):
        store.pop(key, None)

    monkeypatch.setattr(storage_module, "ensure_bucket", lambda: None)
    for target in (storage_module, documents_router, signing_router, retention_module):
        if hasattr(target, "put_bytes"):
            monkeypatch.setattr(target, "put_bytes", fake_put_bytes)
        if hasattr(target, "get_bytes"):
            monkeypatch.setattr(target, "get_bytes", fake_get_bytes)
        if hasattr(target, "delete_object"):
            monkeypatch.setattr(target, "delete_object", fake_delete_object)
    return store


@pytest.fixture
def sent_emails(monkeypatch):
    messages = Outbox()
    failing = messages.failing

    def fake_send_email(to, subject, body, html_body=None, attachments=None, sender_name=None, reply_to=None):
        if to in failing:
            raise ConnectionError(f"SMTP refused {to}")
        messages.append(
            {
                "to": to,
                "subject": subject,
                "text": body,
                "html": html_body,
                "attachments": attachments or [],
                "sender_name": sender_name,
                "reply_to": reply_to,
            }
        )

    for target in (email_module, documents_router, signing_router):
        monkeypatch.setattr(target, "send_email", fake_send_email)
    return messages


@pytest.fixture
def client(test_engine, setup_db, mock_storage, sent_emails, monkeypatch):
    monkeypatch.setattr(db_module, "engine", test_engine)

    def override_session():
        with Session(test_engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def owner_headers(client):
    response = client.post(
        "/api/users",
        json={"email": "owner@example.com", "name": "Olivia Owner"},
        headers=ADMIN_HEADERS,
    )
    assert response.status_code == 201
    return {"X-Access-Token": response.json()["access_token"]}


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def db_session(test_engine, setup_db):
    with Session(test_engine) as session:
        yield session
