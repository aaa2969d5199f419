# backend/sensafe/config.py
from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv
from fastapi.requests import HTTPConnection

load_dotenv()

SESSION_COOKIE_NAME = "authToken"


def _get_bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


def _get_list(key: str, default: str) -> list[str]:
    raw = os.getenv(key, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """
    프로세스 설정. 환경변수(.env 포함)에서 한 번 읽어 create_app 에 주입합니다.
    JWT_SECRET 은 여기서 강제하지 않고, 토큰을 처음 쓰는 시점에 검사합니다.
    """
    database_url: str = "sqlite+aiosqlite:///./sensafe.db"
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    session_ttl_hours: int = 24
    patient_session_multiplier: int = 7
    cookie_secure: bool = False
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"
    log_file: Optional[str] = None
    create_tables: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            jwt_secret=os.getenv("JWT_SECRET") or None,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", cls.jwt_algorithm),
            session_ttl_hours=int(os.getenv("SESSION_TTL_HOURS", str(cls.session_ttl_hours))),
            patient_session_multiplier=int(
                os.getenv("PATIENT_SESSION_MULTIPLIER", str(cls.patient_session_multiplier))
            ),
            cookie_secure=_get_bool("COOKIE_SECURE", cls.cookie_secure),
            cors_origins=_get_list("CORS_ORIGINS", "http://localhost:3000"),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            log_file=os.getenv("LOG_FILE") or None,
            create_tables=_get_bool("CREATE_TABLES", cls.create_tables),
        )


def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings
