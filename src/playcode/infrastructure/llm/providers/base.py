"""
Chat-completion provider interface.

Messages use the OpenAI shape: `[{"role": "system", "content": "..."}, ...]`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ProviderInfo:
    provider_name: str
    model_name: str
    api_base: Optional[str] = None
    max_tokens: int = 4096


class LLMProvider(ABC):
    @abstractmethod
    def invoke(self, messages: List[Dict[str, str]], **kwargs) -> str:
        """
        Run one non-streaming completion.

        Args:
            messages: chat messages
            **kwargs: temperature, max_tokens and similar sampling options

        Returns:
            the reply text, stripped; empty when the model returned nothing
        """
        ...

    @property
    @abstractmethod
    def info(self) -> ProviderInfo:
        ...

    def invoke_simple(self, system_prompt: str, user_prompt: str, **kwargs) -> str:
        return self.invoke(build_messages(system_prompt, user_prompt), **kwargs)

    def __repr__(self) -> str:
        info = self.info
        return f"{self.__class__.__name__}(model={info.model_name}, provider={info.provider_name})"


def build_messages(
    system_prompt: str,
    user_prompt: str,
    history: Optional[List[Dict[str, str]]] = None,
) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": system_prompt}]
    if history:
        messages.extend(history)
    messages.append({"role": "user", "content": user_prompt})
    return messages
