from minio import Minio
from .config import MINIO_ENDPOINT, MINIO_ACCESS_KEY, MINIO_SECRET_KEY, MINIO_BUCKET
import io

_client = Minio(
    MINIO_ENDPOINT,
    access_key=MINIO_ACCESS_KEY,
    secret_key=MINIO_SECRET_KEY,
    secure=False
)

def ensure_bucket():
    if not _client.bucket_exists(MINIO_BUCKET):
        _client.make_bucket(MINIO_BUCKET)

def version_key(owner_id: int, document_id: int, version: int, filename: str) -> str:
    return f"users/{owner_id}/documents/{document_id}/v{version}-{filename}"

def final_key(owner_id: int, document_id: int) -> str:
    return f"users/{owner_id}/documents/{document_id}/final.pdf"

def put_bytes(key: str, data: bytes, content_type: str = "application/octet-stream"):
    _client.put_object(MINIO_BUCKET, key, io.BytesIO(data), length=len(data), content_type=content_type)

def get_bytes(key: str) -> bytes:
    resp = _client.get_object(MINIO_BUCKET, key)
    try:
        return resp.read()
    finally:
        resp.close()
        resp.release_conn()

def delete_object(key: str):
    _client.remove_object(MINIO_BUCKET, key)
