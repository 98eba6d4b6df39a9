"""AI client, prompts, media ingestion and the generation facade."""

from .client import AIClient, ClientSettings
from .generation import GenerationClient, GenerationRequest

__all__ = ["AIClient", "ClientSettings", "GenerationClient", "GenerationRequest"]
