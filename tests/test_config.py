"""Tests for the config system."""

from clientnote.core.config import AnalysisConfig, ClientNoteConfig, LLMConfig, StoreConfig


def test_llm_defaults():
    cfg = LLMConfig()
    assert cfg.provider == "ollama"
    assert cfg.host == "http://localhost:11434"
    assert cfg.timeout == 120.0
    assert cfg.connect_timeout == 5.0


def test_analysis_defaults():
    cfg = AnalysisConfig()
    assert cfg.timeout == 60.0
    assert cfg.concurrent is True


def test_llm_from_env(monkeypatch):
    monkeypatch.setenv("CLIENTNOTE_LLM_PROVIDER", "openai")
    monkeypatch.setenv("CLIENTNOTE_LLM_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("CLIENTNOTE_LLM_HOST", "http://gpu-box:11434/")
    monkeypatch.setenv("CLIENTNOTE_LLM_MAX_TOKENS", "1024")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    cfg = LLMConfig.from_env()

    assert cfg.provider == "openai"
    assert cfg.model == "gpt-4o-mini"
    assert cfg.host == "http://gpu-box:11434"
    assert cfg.max_tokens == 1024
    assert cfg.api_key == "sk-test"


def test_analysis_from_env(monkeypatch):
    monkeypatch.setenv("CLIENTNOTE_ANALYSIS_TIMEOUT", "5")
    monkeypatch.setenv("CLIENTNOTE_ANALYSIS_CONCURRENT", "no")
    cfg = AnalysisConfig.from_env()
    assert cfg.timeout == 5.0
    assert cfg.concurrent is False


def test_root_config_from_env(monkeypatch):
    monkeypatch.setenv("CLIENTNOTE_DB_PATH", "/tmp/notes.db")
    monkeypatch.setenv("CLIENTNOTE_PORT", "9100")
    cfg = ClientNoteConfig.from_env()
    assert cfg.store == StoreConfig(db_path="/tmp/notes.db")
    assert cfg.server.port == 9100
