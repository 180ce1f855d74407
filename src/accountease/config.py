from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os
import sys

from accountease.domain.money import DEFAULT_CURRENCY


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class Settings:
    backend: str = "sqlite"
    db_path: Path | None = None
    firestore_project: str | None = None
    firestore_token: str | None = None
    currency: str = DEFAULT_CURRENCY
    log_level: int = logging.INFO


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "AccountEase") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "accountease.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


def load_settings(environ: dict | None = None) -> Settings:
    env = os.environ if environ is None else environ

    backend = env.get("ACCOUNTEASE_BACKEND", "sqlite").strip().lower()
    if backend not in {"sqlite", "firestore"}:
        raise ValueError(f"Unsupported ACCOUNTEASE_BACKEND: {backend}")

    db_path = env.get("ACCOUNTEASE_DB_PATH")
    level_name = env.get("ACCOUNTEASE_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(level_name)

    return Settings(
        backend=backend,
        db_path=Path(db_path) if db_path else None,
        firestore_project=env.get("ACCOUNTEASE_FIRESTORE_PROJECT") or None,
        firestore_token=env.get("ACCOUNTEASE_FIRESTORE_TOKEN") or None,
        currency=env.get("ACCOUNTEASE_CURRENCY", DEFAULT_CURRENCY).strip().upper() or DEFAULT_CURRENCY,
        log_level=level if isinstance(level, int) else logging.INFO,
    )
