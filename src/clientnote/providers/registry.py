"""
Provider Registry — factory function to get the right backend by config.

Add a new backend? Just add an elif. No plugin systems, no metaclasses.
"""

from __future__ import annotations

import clientnote.core.config as config_module
from clientnote.providers.base import InferenceClient


def get_inference_client() -> InferenceClient:
    provider = config_module.config.llm.provider.lower()
    if provider == "ollama":
        from clientnote.providers.ollama import OllamaInferenceClient

        return OllamaInferenceClient()
    elif provider == "openai":
        from clientnote.providers.openai_llm import OpenAIInferenceClient

        return OpenAIInferenceClient()
    raise ValueError(f"Unknown LLM provider: {provider}")
