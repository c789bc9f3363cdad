from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys

from rbo.domain.errors import ConfigError


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class Settings:
    tax_rate: float = 0.19
    margin_multiplier: float = 1.3
    company_id: Optional[str] = None
    default_branch_id: Optional[int] = None
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    http_timeout: float = 10.0

    @property
    def uses_remote_store(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "RetailBackOffice") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "intake.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


def _number(env: Mapping[str, str], key: str, default: float, cast=float):
    raw = (env.get(key) or "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number. Received: {raw!r}")
    if value < 0:
        raise ConfigError(f"{key} must be >= 0. Received: {raw!r}")
    return value


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if env is None else env
    branch = _number(env, "RBO_DEFAULT_BRANCH_ID", None, int)
    return Settings(
        tax_rate=_number(env, "RBO_TAX_RATE", 0.19),
        margin_multiplier=_number(env, "RBO_MARGIN_MULTIPLIER", 1.3),
        company_id=(env.get("RBO_COMPANY_ID") or "").strip() or None,
        default_branch_id=branch,
        supabase_url=(env.get("RBO_SUPABASE_URL") or "").strip().rstrip("/") or None,
        supabase_key=(env.get("RBO_SUPABASE_KEY") or "").strip() or None,
        http_timeout=_number(env, "RBO_HTTP_TIMEOUT", 10.0),
    )
