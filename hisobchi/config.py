# hisobchi/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in instance/hisobchi.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///hisobchi.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Web-app origin (Telegram mini app frontend)
    FRONTEND_URL = os.environ.get("FRONTEND_URL")
    CORS_ORIGINS = (
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "https://localhost:3000",
    )

    # Retry policy for lock/deadlock failures inside a unit of work
    DB_RETRY_ATTEMPTS = int(os.environ.get("DB_RETRY_ATTEMPTS", "3"))
    DB_RETRY_BACKOFF = float(os.environ.get("DB_RETRY_BACKOFF", "0.1"))
