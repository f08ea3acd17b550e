from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import streamlit as st
from dotenv import load_dotenv

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "STOCKROOM_DATA_DIR"
ENV_API_HOST = "STOCKROOM_API_HOST"
ENV_API_PORT = "STOCKROOM_API_PORT"
ENV_API_URL = "STOCKROOM_API_URL"
ENV_LOG_LEVEL = "STOCKROOM_LOG_LEVEL"

SESSION_DATA_DIR_KEY = "stockroom_data_dir"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "USD"
    api_host: str = "127.0.0.1"
    api_port: int = 3001
    api_base_url: str = "http://localhost:3001/api"
    log_level: str = "INFO"


def _default_data_dir() -> Path:
    return Path.home() / ".stockroom"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
    return {}


def _resolve_data_dir(override: str | None = None) -> Path:
    # Priority order:
    # 1) Explicit override (session state)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    if override:
        return Path(override).expanduser().resolve()
    if os.getenv(ENV_DATA_DIR):
        return Path(os.getenv(ENV_DATA_DIR, "")).expanduser().resolve()
    default_dir = _default_data_dir()
    persisted = _load_persisted_settings(default_dir)
    return Path(persisted.get("data_dir", default_dir)).expanduser().resolve()


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    # Written to the default folder so the next start finds it.
    default_dir = _default_data_dir()
    default_dir.mkdir(parents=True, exist_ok=True)
    cfg = default_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Update session for immediate effect
    st.session_state[SESSION_DATA_DIR_KEY] = str(data_dir)


def load_settings(data_dir: str | None = None) -> Settings:
    """Build settings from the environment (and `.env`), without Streamlit state."""
    load_dotenv()

    resolved = _resolve_data_dir(data_dir)
    resolved.mkdir(parents=True, exist_ok=True)

    port = int(os.getenv(ENV_API_PORT, "3001"))
    return Settings(
        data_dir=resolved,
        db_path=resolved / "stockroom.db",
        api_host=os.getenv(ENV_API_HOST, "127.0.0.1"),
        api_port=port,
        api_base_url=os.getenv(ENV_API_URL, f"http://localhost:{port}/api"),
        log_level=os.getenv(ENV_LOG_LEVEL, "INFO").upper(),
    )


@st.cache_resource
def _cached_settings(session_dir: str | None) -> Settings:
    return load_settings(session_dir)


def get_settings() -> Settings:
    return _cached_settings(st.session_state.get(SESSION_DATA_DIR_KEY))
