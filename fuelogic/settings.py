# fuelogic/settings.py
"""
Application settings.
"""

import os
from dataclasses import dataclass
from typing import Optional

# Load .env file
from dotenv import load_dotenv
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class Settings:
    """Application configuration."""

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./fuelogic.db")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = _env_bool("LOG_JSON", "true")

    # Authentication: comma-separated "token:owner" pairs
    auth_enabled: bool = _env_bool("AUTH_ENABLED", "true")
    api_tokens: str = os.getenv("API_TOKENS", "")

    # Webhook delivery
    webhook_timeout_seconds: float = float(os.getenv("WEBHOOK_TIMEOUT", "10"))
    allow_internal_webhooks: bool = _env_bool("ALLOW_INTERNAL_WEBHOOKS")

    # Sophia AI chat endpoint (proxied by /sophia/chat)
    sophia_chat_url: Optional[str] = os.getenv("SOPHIA_CHAT_URL") or None
    sophia_timeout_seconds: float = float(os.getenv("SOPHIA_TIMEOUT", "30"))

    # Threshold defaults for owners without a stored configuration
    default_threshold_critical: float = float(os.getenv("DEFAULT_THRESHOLD_CRITICO", "20"))
    default_threshold_attention: float = float(os.getenv("DEFAULT_THRESHOLD_ATENCAO", "50"))

    # API settings
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    allowed_origins: str = os.getenv(
        "ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
    )


# Global settings instance
settings = Settings()
