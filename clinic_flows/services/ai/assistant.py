"""
AI assistant - text generation with automatic model fallback.

ask() walks a chain of models (Gemini models newest first, then OpenAI) and
returns the first answer. A rejected key or exhausted quota drops the rest of
that provider's models from the chain. It never raises: when no model
answers, the response carries a fallback text and an error message.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from clinic_flows.config import get_setting
from .exceptions import AIGenerationError, AIInvalidKeyError, AIQuotaExceededError
from .llm_service import LLMService
from .utils import (
    DEFAULT_OPENAI_MODEL,
    PROVIDER_MODELS,
    get_api_key_setting,
    get_model_string,
    split_model_string,
)

logger = logging.getLogger('clinic_flows.ai')

SYSTEM_PROMPT = (
    "You are a medical assistant for a rehabilitation clinic. "
    "Be polite, empathetic and professional. "
    "Reply in Arabic or English, following the language of the user."
)

FALLBACK_TEXT = "Sorry, the AI service is currently unavailable."


@dataclass
class AIResponse:
    text: str
    model: Optional[str] = None
    error: Optional[str] = None


def build_model_chain(preferred_model: Optional[str] = None) -> List[str]:
    """
    Ordered list of 'provider/model' strings to try.

    'gemini' -> every Gemini model; 'openai' -> the OpenAI model;
    'auto' (or empty) -> Gemini models then OpenAI; anything else is taken
    as a model name, tried first, followed by the auto chain.
    """
    gemini_chain = [get_model_string('gemini', m) for m in PROVIDER_MODELS['gemini']]
    openai_chain = [get_model_string('openai', DEFAULT_OPENAI_MODEL)]
    auto_chain = gemini_chain + openai_chain

    choice = (preferred_model or 'auto').strip()
    if choice.lower() == 'gemini':
        return gemini_chain
    if choice.lower() == 'openai':
        return openai_chain
    if choice.lower() == 'auto':
        return auto_chain

    provider, model_name = split_model_string(choice)
    first = get_model_string(provider, model_name)
    return [first] + [m for m in auto_chain if m != first]


class AIAssistant:
    """Wraps LLMService with the model fallback chain"""

    def __init__(self, llm_service: Optional[LLMService] = None):
        self.llm_service = llm_service or LLMService(timeout=get_setting('AI_TIMEOUT', 60))

    def _api_key(self, provider: str) -> Optional[str]:
        return get_setting(get_api_key_setting(provider)) or None

    async def ask(
        self,
        prompt: str,
        context: Optional[str] = None,
        preferred_model: Optional[str] = None,
    ) -> AIResponse:
        """
        Ask the AI a question, falling back through the model chain.

        Args:
            prompt: The question or instruction
            context: Optional auxiliary context (e.g. JSON of the run context)
            preferred_model: 'auto', 'gemini', 'openai' or a model name;
                defaults to the AI_MODEL setting

        Returns:
            AIResponse; error is set when every model failed
        """
        preferred_model = preferred_model or get_setting('AI_MODEL', 'auto')
        chain = build_model_chain(preferred_model)

        attempted = 0
        last_error = None
        blocked_providers = set()
        for model in chain:
            provider, _ = split_model_string(model)
            if provider in blocked_providers:
                continue
            api_key = self._api_key(provider)
            if not api_key:
                continue

            attempted += 1
            try:
                response = await self.llm_service.generate_text_async(
                    model=model,
                    prompt=prompt,
                    api_key=api_key,
                    system_prompt=SYSTEM_PROMPT,
                    context=context,
                )
                return AIResponse(text=response.text, model=model)
            except (AIInvalidKeyError, AIQuotaExceededError) as e:
                last_error = e
                blocked_providers.add(provider)
                logger.warning(f"[AI] Skipping remaining {provider} models: {e}")
            except AIGenerationError as e:
                last_error = e
                logger.warning(f"[AI] Model {model} failed: {e}")

        if attempted == 0:
            logger.error("[AI] No AI API keys configured")
            return AIResponse(text=FALLBACK_TEXT, error='No AI service configured')

        logger.error(f"[AI] All models failed (preferred={preferred_model}): {last_error}")
        return AIResponse(text=FALLBACK_TEXT, error='All AI models failed')


_ai_assistant: Optional[AIAssistant] = None


def get_ai_assistant() -> AIAssistant:
    global _ai_assistant
    if _ai_assistant is None:
        _ai_assistant = AIAssistant()
    return _ai_assistant


async def ask(prompt: str, context: Optional[str] = None, preferred_model: Optional[str] = None) -> AIResponse:
    """Module-level shortcut for get_ai_assistant().ask(...)"""
    return await get_ai_assistant().ask(prompt, context, preferred_model)
