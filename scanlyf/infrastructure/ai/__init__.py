"""OpenAI adapters for vision, text parsing and personalization."""

from scanlyf.infrastructure.ai.openai_client import OpenAIFoodClient

__all__ = ["OpenAIFoodClient"]
