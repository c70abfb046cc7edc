# habitflow/config.py
"""
Runtime configuration.

Values come from the environment (optionally a local ``.env`` file) and are
collected once into plain dataclasses.
"""
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

BACKENDS = ("sql", "local")

GROQ_API_URL = "https://api.groq.com/openai/v1"

# Tried in order; production models first, preview models as fallback.
DEFAULT_AI_MODELS = (
    "llama-3.3-70b-versatile",
    "llama-3.1-8b-instant",
    "gemma2-9b-it",
    "meta-llama/llama-4-scout-17b-16e-instruct",
    "qwen/qwen3-32b",
)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseConfig:
    url: str = "sqlite:///./habitflow.db"
    echo: bool = False


@dataclass
class AIConfig:
    api_key: Optional[str] = None
    api_url: str = GROQ_API_URL
    models: Tuple[str, ...] = DEFAULT_AI_MODELS
    timeout: float = 30.0
    max_tokens: int = 1000
    enabled: bool = True

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key) and bool(self.models)


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3001
    frontend_url: str = "http://localhost:3000"


@dataclass
class Settings:
    backend: str = "sql"
    data_file: Path = field(default_factory=lambda: Path.home() / ".habitflow.json")
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"
    log_file: Optional[str] = None
    reminders_enabled: bool = True

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValueError(f"HABITFLOW_BACKEND must be one of {', '.join(BACKENDS)}, got '{self.backend}'")

    @classmethod
    def from_env(cls) -> "Settings":
        models = tuple(m.strip() for m in os.getenv("AI_MODELS", "").split(",") if m.strip())
        return cls(
            backend=os.getenv("HABITFLOW_BACKEND", "sql").lower(),
            data_file=Path(os.path.expanduser(os.getenv("HABITFLOW_DATA_FILE", "~/.habitflow.json"))),
            database=DatabaseConfig(
                url=os.getenv("DATABASE_URL", "sqlite:///./habitflow.db"),
                echo=_env_bool("DATABASE_ECHO", False),
            ),
            ai=AIConfig(
                api_key=os.getenv("GROQ_API_KEY"),
                api_url=os.getenv("GROQ_API_URL", GROQ_API_URL).rstrip("/"),
                models=models or DEFAULT_AI_MODELS,
                timeout=float(os.getenv("AI_TIMEOUT", "30")),
                max_tokens=int(os.getenv("AI_MAX_TOKENS", "1000")),
                enabled=_env_bool("AI_ENABLED", True),
            ),
            server=ServerConfig(
                host=os.getenv("HOST", "0.0.0.0"),
                port=int(os.getenv("PORT", "3001")),
                frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000"),
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_file=os.getenv("LOG_FILE") or None,
            reminders_enabled=_env_bool("REMINDERS_ENABLED", True),
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
