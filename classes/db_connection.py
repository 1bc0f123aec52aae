# classes/db_connection.py
import os
from typing import Callable

from google.cloud import secretmanager
from google.oauth2 import service_account
from google.auth import default as google_auth_default
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from classes import app_config
from classes.app_config import logger


def _build_creds():
    key_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    scopes = ["https://www.googleapis.com/auth/cloud-platform"]
    if key_path and os.path.exists(key_path):
        return service_account.Credentials.from_service_account_file(key_path, scopes=scopes)
    creds, _ = google_auth_default(scopes=scopes)
    return creds


_db_password: str | None = None


def get_db_password() -> str:
    global _db_password

    if _db_password:
        return _db_password

    if app_config.DB_PASSWORD:
        _db_password = app_config.DB_PASSWORD
        return _db_password

    if app_config.DB_SECRET_ID:
        client = secretmanager.SecretManagerServiceClient(credentials=_build_creds())
        name = client.secret_version_path(app_config.PROJECT_ID, app_config.DB_SECRET_ID, "latest")
        resp = client.access_secret_version(request={"name": name})
        _db_password = resp.payload.data.decode("utf-8")
        return _db_password

    raise RuntimeError("No DB_PASSWORD and no Secret Manager configured")


def build_database_url() -> str:
    if app_config.DATABASE_URL:
        return app_config.DATABASE_URL
    password = get_db_password()
    return (
        f"postgresql+pg8000://{app_config.DB_USER}:{password}"
        f"@{app_config.DB_HOST}:{app_config.DB_PORT}/{app_config.DB_NAME}"
    )


def get_db_engine(url: str | None = None) -> Engine:
    url = url or build_database_url()

    if url.startswith("sqlite"):
        logger.info("[DB] Using SQLite database")
        return create_engine(url, connect_args={"check_same_thread": False})

    # never log the assembled URL, it carries the password
    logger.info(f"[DB] Connecting to Postgres at {app_config.DB_HOST}:{app_config.DB_PORT}/{app_config.DB_NAME}")

    # pg8000 supports 'timeout' in seconds
    connect_args = {"timeout": 10} if "pg8000" in url else {}
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args=connect_args,  # fail in 10s instead of hanging forever
    )


def create_session_factory(engine: Engine | None = None) -> Callable[[], Session]:
    engine = engine or get_db_engine()
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )
