# -*- coding: utf-8 -*-


from pathlib import Path
from dataclasses import dataclass
from typing import Optional
import os

from dotenv import load_dotenv

# ============================================================================
# Load .env file for local environment configuration
# ============================================================================
load_dotenv()

# ============================================================================
# Read settings from environment variables (from .env or system)
# ============================================================================
# API Settings
_API_BASE_URL = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")
_API_TIMEOUT = int(os.getenv("API_TIMEOUT", "30"))
_API_TOKEN = os.getenv("API_TOKEN", None)
_API_VERIFY_SSL = os.getenv("API_VERIFY_SSL", "true").lower() in ("true", "1", "yes")

# Wizard Settings
_DEFAULT_COLLEGE_ID = os.getenv("DEFAULT_COLLEGE_ID", None)
_SUBMIT_RETRY_POLICY = os.getenv("SUBMIT_RETRY_POLICY", "reuse").lower()
_CANDIDATE_PAGE_SIZE = int(os.getenv("CANDIDATE_PAGE_SIZE", "100"))
_TEACHER_PAGE_SIZE = int(os.getenv("TEACHER_PAGE_SIZE", "200"))

# Local storage location (drafts survive restarts here)
_DATA_DIR = os.getenv("ACADEMIC_ADMIN_DATA_DIR", None)


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    return int(value)


@dataclass
class Config:
    """Application configuration."""

    # Application Info
    APP_NAME: str = "Academic Admin"
    APP_TITLE: str = "Academic Records Administration"
    VERSION: str = "1.0.0"

    # HTTP API Backend Settings
    # Reads from .env file (API_BASE_URL, API_TIMEOUT, API_TOKEN)
    API_BASE_URL: str = _API_BASE_URL
    API_VERSION: str = "v1"
    API_TIMEOUT: int = _API_TIMEOUT
    API_TOKEN: Optional[str] = _API_TOKEN
    API_VERIFY_SSL: bool = _API_VERIFY_SSL

    # Wizard behaviour
    # College injected into every create payload and the final link record
    DEFAULT_COLLEGE_ID: Optional[int] = _optional_int(_DEFAULT_COLLEGE_ID)
    # "reuse": skip create calls already done by a failed attempt
    # "recreate": every attempt creates every entity again
    SUBMIT_RETRY_POLICY: str = _SUBMIT_RETRY_POLICY
    CANDIDATE_PAGE_SIZE: int = _CANDIDATE_PAGE_SIZE
    TEACHER_PAGE_SIZE: int = _TEACHER_PAGE_SIZE

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    DATA_DIR: Path = Path(_DATA_DIR) if _DATA_DIR else PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # Local key/value storage (drafts)
    STORAGE_NAME: str = "local_storage.db"
    STORAGE_PATH: Path = DATA_DIR / STORAGE_NAME

    # Logging
    LOG_FILE: str = "app.log"
    LOG_PATH: Path = LOGS_DIR / LOG_FILE
    LOG_MAX_BYTES: int = 5 * 1024 * 1024  # 5MB
    LOG_BACKUP_COUNT: int = 3

    # Date Formats
    DATE_FORMAT: str = "%Y-%m-%d"
    DATETIME_FORMAT: str = "%Y-%m-%d %H:%M:%S"


class RetryPolicy:
    REUSE = "reuse"
    RECREATE = "recreate"

    ALL = (REUSE, RECREATE)

    @classmethod
    def normalize(cls, value: Optional[str]) -> str:
        if value in cls.ALL:
            return value
        return cls.REUSE


# Entity kinds understood by the directory API
class EntityKinds:
    USERS = "users"
    PROGRAMS = "programs"
    CLASSES = "classes"
    SECTIONS = "sections"
    ACADEMIC_SESSIONS = "academic_sessions"
    CLASS_TEACHERS = "class_teachers"


# Controlled vocabularies
class Vocabularies:
    GENDERS = [
        ("male", "Male"),
        ("female", "Female"),
        ("other", "Other"),
    ]

    USER_TYPES = [
        ("teacher", "Teacher"),
        ("student", "Student"),
        ("staff", "Staff"),
    ]
