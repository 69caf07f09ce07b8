"""Inference backends: the abstract client plus Ollama and OpenAI adapters."""

from clientnote.providers.base import InferenceClient, InferenceRequest
from clientnote.providers.registry import get_inference_client

__all__ = ["InferenceClient", "InferenceRequest", "get_inference_client"]
