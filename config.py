"""
Application configuration.
This module defines the configuration settings for the RFP vendor portal, including database connection, secret key,
autosave timings and draft retention. It uses environment variables for sensitive information and defaults for
development. In production, make sure to set the appropriate environment variables and secure the secret key.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'rfp_portal.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CSRF protection for forms (JSON API blueprints are exempt)
    WTF_CSRF_ENABLED = True

    APP_NAME = "RFP Vendor Portal"

    # Single-RFP design: every submission is filed against this RFP
    RFP_TYPE = os.environ.get("RFP_TYPE", "Private Aviation Workflow Modernization")

    # Wizard autosave (seconds)
    AUTOSAVE_DEBOUNCE_SECONDS = _env_float("AUTOSAVE_DEBOUNCE_SECONDS", 2.0)
    AUTOSAVE_STATUS_DISPLAY_SECONDS = _env_float("AUTOSAVE_STATUS_DISPLAY_SECONDS", 3.0)

    # Drafts untouched for longer than this are removed by `flask purge-drafts`
    DRAFT_RETENTION_DAYS = int(os.environ.get("DRAFT_RETENTION_DAYS", "30"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    """In-memory database, no CSRF. Used by the test-suite."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    SECRET_KEY = "test-secret"
    LOG_LEVEL = "DEBUG"
