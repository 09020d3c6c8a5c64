"""Summary: Application configuration for InboxSift.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for providers, storage, and jobs.

    Importance: Ensures all services derive settings from a single source of truth.
    Alternatives: Store settings in a shared config file and parse at startup.
    """

    db_path: str
    ai_provider: str
    openai_api_key: str | None
    openai_model: str
    openai_base_url: str
    ollama_url: str
    ollama_model: str
    ai_timeout_seconds: float
    app_timezone: str
    app_locale: str
    extraction_max_attempts: int
    extraction_backoff_seconds: float
    job_workers: int
    api_host: str
    api_port: int
    api_key: str
    default_workspace_name: str
    resend_webhook_secret: str

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        return AppConfig(
            db_path=os.getenv("INBOXSIFT_DB_PATH", defaults["db_path"]),
            ai_provider=os.getenv("INBOXSIFT_AI_PROVIDER", defaults["ai_provider"]),
            openai_api_key=os.getenv("OPENAI_API_KEY") or defaults["openai_api_key"] or None,
            openai_model=os.getenv("OPENAI_MODEL", defaults["openai_model"]),
            openai_base_url=os.getenv("INBOXSIFT_OPENAI_BASE_URL", defaults["openai_base_url"]),
            ollama_url=os.getenv("OLLAMA_URL", defaults["ollama_url"]),
            ollama_model=os.getenv("OLLAMA_MODEL", defaults["ollama_model"]),
            ai_timeout_seconds=float(
                os.getenv("INBOXSIFT_AI_TIMEOUT_SECONDS", defaults["ai_timeout_seconds"])
            ),
            app_timezone=os.getenv("INBOXSIFT_TIMEZONE", defaults["app_timezone"]),
            app_locale=os.getenv("INBOXSIFT_LOCALE", defaults["app_locale"]),
            extraction_max_attempts=int(
                os.getenv("INBOXSIFT_EXTRACTION_MAX_ATTEMPTS", defaults["extraction_max_attempts"])
            ),
            extraction_backoff_seconds=float(
                os.getenv(
                    "INBOXSIFT_EXTRACTION_BACKOFF_SECONDS", defaults["extraction_backoff_seconds"]
                )
            ),
            job_workers=int(os.getenv("INBOXSIFT_JOB_WORKERS", defaults["job_workers"])),
            api_host=os.getenv("INBOXSIFT_API_HOST", defaults["api_host"]),
            api_port=int(os.getenv("INBOXSIFT_API_PORT", defaults["api_port"])),
            api_key=os.getenv("INBOXSIFT_API_KEY", defaults["api_key"]),
            default_workspace_name=os.getenv(
                "INBOXSIFT_DEFAULT_WORKSPACE_NAME", defaults["default_workspace_name"]
            ),
            resend_webhook_secret=os.getenv(
                "INBOXSIFT_RESEND_WEBHOOK_SECRET", defaults["resend_webhook_secret"]
            ),
        )


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps secrets out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip('"'))
