"""Factories for the embedding and chat models named in settings."""

from .embedder import get_embedder
from .llm_factory import get_llm

__all__ = ["get_embedder", "get_llm"]
