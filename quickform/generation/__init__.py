"""Content-generation collaborators for operation bodies."""

from .llm import ChatModel, GenerationError, fill_prompt

__all__ = ["ChatModel", "GenerationError", "fill_prompt"]
