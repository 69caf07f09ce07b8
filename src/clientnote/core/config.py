"""
ClientNote Configuration — single source of truth for all settings.

Reads from environment variables with sensible defaults.
A .env file in the working directory is honored via python-dotenv.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class LLMConfig:
    """Inference backend settings.

    provider selects the backend: "ollama" (local) or "openai" (remote,
    any OpenAI-compatible endpoint).
    """

    provider: str = "ollama"
    host: str = "http://localhost:11434"
    model: str = "qwen3:0.6b"
    api_key: str = ""
    base_url: str = ""
    timeout: float = 120.0
    connect_timeout: float = 5.0
    max_tokens: int = 4096
    num_ctx: int = 32768  # Ollama context window for long clinical prompts

    @classmethod
    def from_env(cls) -> LLMConfig:
        return cls(
            provider=os.getenv("CLIENTNOTE_LLM_PROVIDER", "ollama"),
            host=os.getenv("CLIENTNOTE_LLM_HOST", "http://localhost:11434").rstrip("/"),
            model=os.getenv("CLIENTNOTE_LLM_MODEL", "qwen3:0.6b"),
            api_key=os.getenv("OPENAI_API_KEY", ""),
            base_url=os.getenv("CLIENTNOTE_LLM_BASE_URL", ""),
            timeout=float(os.getenv("CLIENTNOTE_LLM_TIMEOUT", "120.0")),
            connect_timeout=float(os.getenv("CLIENTNOTE_LLM_CONNECT_TIMEOUT", "5.0")),
            max_tokens=int(os.getenv("CLIENTNOTE_LLM_MAX_TOKENS", "4096")),
            num_ctx=int(os.getenv("CLIENTNOTE_LLM_NUM_CTX", "32768")),
        )


@dataclass(frozen=True)
class AnalysisConfig:
    """Preliminary analysis pass settings (session notes only)."""

    timeout: float = 60.0  # seconds per analysis call
    concurrent: bool = True
    temperature: float = 0.2

    @classmethod
    def from_env(cls) -> AnalysisConfig:
        return cls(
            timeout=float(os.getenv("CLIENTNOTE_ANALYSIS_TIMEOUT", "60.0")),
            concurrent=_env_bool("CLIENTNOTE_ANALYSIS_CONCURRENT", "true"),
            temperature=float(os.getenv("CLIENTNOTE_ANALYSIS_TEMPERATURE", "0.2")),
        )


@dataclass(frozen=True)
class StoreConfig:
    """Durable activity storage."""

    db_path: str = "clientnote.db"

    @classmethod
    def from_env(cls) -> StoreConfig:
        return cls(db_path=os.getenv("CLIENTNOTE_DB_PATH", "clientnote.db"))


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server settings."""

    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> ServerConfig:
        return cls(
            host=os.getenv("CLIENTNOTE_HOST", "127.0.0.1"),
            port=int(os.getenv("CLIENTNOTE_PORT", "8000")),
        )


@dataclass(frozen=True)
class ClientNoteConfig:
    """Root configuration."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls) -> ClientNoteConfig:
        return cls(
            llm=LLMConfig.from_env(),
            analysis=AnalysisConfig.from_env(),
            store=StoreConfig.from_env(),
            server=ServerConfig.from_env(),
        )


config = ClientNoteConfig.from_env()


def reload_config() -> ClientNoteConfig:
    """Re-read the environment and replace the module-level config."""
    global config
    config = ClientNoteConfig.from_env()
    return config
