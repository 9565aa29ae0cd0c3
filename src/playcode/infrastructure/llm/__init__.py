from .providers import LLMProvider, OpenAIProvider

__all__ = ["LLMProvider", "OpenAIProvider"]
