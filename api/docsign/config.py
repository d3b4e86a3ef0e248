import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./docsign.db")
MINIO_ENDPOINT = os.getenv("MINIO_ENDPOINT", "minio:9000")
MINIO_ACCESS_KEY = os.getenv("MINIO_ACCESS_KEY", "minioadmin")
MINIO_SECRET_KEY = os.getenv("MINIO_SECRET_KEY", "minioadmin")
MINIO_BUCKET = os.getenv("MINIO_BUCKET", "documents")
SECRET_KEY = os.getenv("SECRET_KEY", "devsecret")
ADMIN_ACCESS_TOKEN = os.getenv("ADMIN_ACCESS_TOKEN", "admin-test-token")
WEB_BASE_URL = os.getenv("WEB_BASE_URL", "http://localhost:3000")
DEFAULT_EXPIRY_DAYS = int(os.getenv("DEFAULT_EXPIRY_DAYS", "0"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
