from .base import LLMProvider, ProviderInfo, build_messages
from .openai_provider import OpenAIProvider

__all__ = ["LLMProvider", "OpenAIProvider", "ProviderInfo", "build_messages"]
