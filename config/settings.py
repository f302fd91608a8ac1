from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv


load_dotenv()


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(env: Mapping[str, str], name: str) -> Optional[str]:
    raw = (env.get(name) or "").strip()
    return raw or None


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here. Components receive an
    instance at construction instead of reading the environment themselves.
    """

    app_env: str = "development"
    gemini_api_key: Optional[str] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_reply_model: str = "gemini-2.5-flash"
    gemini_extract_model: str = "gemini-2.0-flash"
    whatsapp_token: Optional[str] = None
    phone_number_id: Optional[str] = None
    graph_api_version: str = "v19.0"
    graph_base_url: str = "https://graph.facebook.com"
    verify_token: str = "HEHEHAHA"
    mongo_uri: Optional[str] = None
    mongo_db: str = "whatsapp_bot"
    http_timeout_seconds: float = 60.0
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            app_env=_env_str(env, "APP_ENV") or defaults.app_env,
            gemini_api_key=_env_str(env, "GEMINI_API_KEY"),
            gemini_base_url=_env_str(env, "GEMINI_BASE_URL") or defaults.gemini_base_url,
            gemini_reply_model=_env_str(env, "GEMINI_REPLY_MODEL") or defaults.gemini_reply_model,
            gemini_extract_model=_env_str(env, "GEMINI_EXTRACT_MODEL") or defaults.gemini_extract_model,
            whatsapp_token=_env_str(env, "WHATSAPP_TOKEN"),
            phone_number_id=_env_str(env, "PHONE_NUMBER_ID"),
            # VERSION is the name the Graph API docs use in their samples
            graph_api_version=(
                _env_str(env, "GRAPH_API_VERSION")
                or _env_str(env, "VERSION")
                or defaults.graph_api_version
            ),
            graph_base_url=_env_str(env, "GRAPH_BASE_URL") or defaults.graph_base_url,
            verify_token=_env_str(env, "VERIFY_TOKEN") or defaults.verify_token,
            mongo_uri=_env_str(env, "MONGO_URI"),
            mongo_db=_env_str(env, "MONGO_DB") or defaults.mongo_db,
            http_timeout_seconds=_env_float(env, "HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds),
            port=_env_int(env, "PORT", defaults.port),
            log_level=(_env_str(env, "LOG_LEVEL") or defaults.log_level).upper(),
        )

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() in {"dev", "development", "local"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
