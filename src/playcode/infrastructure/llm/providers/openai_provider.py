from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from .base import LLMProvider, ProviderInfo

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions, or any OpenAI-compatible endpoint via `base_url`."""

    ALLOWED_PARAMS = {
        "temperature",
        "top_p",
        "presence_penalty",
        "frequency_penalty",
        "max_tokens",
        "timeout",
    }

    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-3.5-turbo",
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Any = None,
    ):
        if not api_key:
            raise ValueError("API key must not be empty")

        self.model_name = model_name
        self.base_url = base_url
        self.timeout = timeout

        if client is not None:
            self.client = client
        else:
            client_kwargs: Dict[str, Any] = {"api_key": api_key, "max_retries": 0}
            if base_url:
                client_kwargs["base_url"] = base_url
            self.client = OpenAI(**client_kwargs)
        logger.info(f"OpenAIProvider ready: {self}")

    def invoke(self, messages: List[Dict[str, str]], **kwargs) -> str:
        extra_params = {k: v for k, v in kwargs.items() if k in self.ALLOWED_PARAMS and v is not None}
        timeout = extra_params.pop("timeout", self.timeout)

        response = self.client.chat.completions.create(
            model=self.model_name,
            messages=messages,
            timeout=timeout,
            **extra_params,
        )

        if response.choices and response.choices[0].message:
            content = response.choices[0].message.content
            return content.strip() if content else ""
        return ""

    @property
    def info(self) -> ProviderInfo:
        return ProviderInfo(
            provider_name="openai" if not self.base_url else "openai-compatible",
            model_name=self.model_name,
            api_base=self.base_url or "https://api.openai.com",
        )
