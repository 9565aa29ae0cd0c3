from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from openai import OpenAIError

from playcode.core.errors import RateLimitError, ServiceUnavailableError
from playcode.infrastructure.llm.providers.base import LLMProvider, build_messages
from playcode.infrastructure.security.input_validation import ChatMessageIn, parse_model
from playcode.infrastructure.security.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

PLAYBOT_SYSTEM_PROMPT = """
Você é o PlayBot, um assistente AI especializado em desenvolvimento gaming da PlayCode Agency.

PERSONALIDADE:
- Entusiasta de games e tecnologia
- Linguagem casual mas profissional
- Usa termos gaming e metáforas de jogos
- Emoticons e emojis gaming frequentes
- Respostas diretas e úteis

ESPECIALIDADES:
- Desenvolvimento web com foco gaming
- Tecnologias modernas (React, Next.js, AI)
- Design systems cyberpunk/gaming
- Integração de IA em aplicações
- Performance e otimização
- UX/UI gaming

REGRAS:
- Sempre mencionar "level up" para melhorias
- Chamar usuários de "player"
- Referenciar conquistas e power-ups
- Sugerir soluções práticas
- Manter tom motivacional
- Máximo 200 palavras por resposta
- Focar em soluções da PlayCode Agency

EXEMPLO DE RESPOSTA:
"🎮 Fala, player! Essa quest parece interessante... Para dar level up no seu projeto, eu recomendaria nossos power-ups de IA + React. Vamos conquistar essa achievement juntos! ⚡"
""".strip()

COMPLETION_PARAMS = {
    "max_tokens": 300,
    "temperature": 0.7,
    "presence_penalty": 0.6,
    "frequency_penalty": 0.6,
}

EMPTY_REPLY = "🎮 Ops! Algo deu errado na matrix. Tente novamente, player!"
OFFLINE_FALLBACK = (
    "🎮 Oi, player! Estou em manutenção no momento, mas você pode entrar em contato diretamente "
    "conosco para conhecer nossos power-ups incríveis! ⚡"
)
GLITCH_FALLBACK = (
    "🎮 Desculpa, player! Tive um glitch aqui. Nossa equipe está trabalhando para dar level up na minha performance!"
)


def chat_xp(message: str) -> int:
    return len(message) // 10 + 10


def chat_achievements(message: str) -> List[str]:
    text = message.lower()
    achievements: List[str] = []
    if "ia" in text or "ai" in text:
        achievements.append("ai_curious")
    if "jogo" in text or "game" in text:
        achievements.append("gaming_enthusiast")
    if len(message) > 100:
        achievements.append("detailed_player")
    return achievements


class ChatbotService:
    """PlayBot: one-shot chat completions with XP and achievements."""

    def __init__(self, provider: Optional[LLMProvider], rate_limiter: RateLimiter):
        self.provider = provider
        self.rate_limiter = rate_limiter

    @property
    def online(self) -> bool:
        return self.provider is not None

    def status(self) -> Dict[str, Any]:
        return {
            "status": "online" if self.online else "offline",
            "message": "🤖 PlayBot está online e pronto para ajudar!"
            if self.online
            else "🤖 PlayBot está temporariamente offline. Configure a OPENAI_API_KEY.",
            "version": "1.0.0",
            "features": ["chat", "achievements", "xp-system"],
            "endpoints": {"chat": "POST /api/chatbot", "health": "GET /api/chatbot"},
        }

    async def chat(self, body: Any, *, ip: str = "unknown") -> Dict[str, Any]:
        if self.provider is None:
            raise ServiceUnavailableError(
                "🤖 PlayBot está temporariamente offline. Configure a OPENAI_API_KEY.",
                code="CHATBOT_OFFLINE",
                context={"fallbackResponse": OFFLINE_FALLBACK},
            )
        if self.rate_limiter.is_rate_limited(ip):
            raise RateLimitError(
                "🚫 Calma aí, player! Muitas mensagens. Aguarde um pouco para continuar a conversa.",
                context={"achievement": "speed_demon"},
            )

        request: ChatMessageIn = parse_model(ChatMessageIn, body, "📝 Dados inválidos na mensagem")
        started = time.monotonic()
        try:
            reply = await asyncio.to_thread(
                self.provider.invoke,
                build_messages(PLAYBOT_SYSTEM_PROMPT, request.message),
                **COMPLETION_PARAMS,
            )
        except OpenAIError as e:
            logger.error(f"PlayBot completion failed: {e}")
            raise ServiceUnavailableError(
                "🤖 PlayBot encontrou um bug! Tente novamente.",
                code="CHATBOT_PROVIDER_ERROR",
                context={"fallbackResponse": GLITCH_FALLBACK},
            ) from e

        return {
            "response": reply or EMPTY_REPLY,
            "conversationId": request.conversationId or f"chat_{int(time.time() * 1000)}",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "playbot": {"status": "online", "mood": "helpful", "level": 42},
            "user": {
                "id": request.userId or "anonymous",
                "xp": chat_xp(request.message),
                "achievements": chat_achievements(request.message),
            },
            "metadata": {
                "model": self.provider.info.model_name,
                "responseTimeMs": int((time.monotonic() - started) * 1000),
            },
        }
