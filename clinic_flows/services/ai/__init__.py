"""
AI Services - text generation through LiteLLM with model fallback.
"""

from .llm_service import LLMService, LLMResponse
from .assistant import AIAssistant, AIResponse, ask, build_model_chain, get_ai_assistant
from .exceptions import (
    AIGenerationError,
    AIInvalidKeyError,
    AIQuotaExceededError,
)
from .utils import (
    PROVIDER_MODELS,
    get_model_string,
    estimate_cost,
)

__all__ = [
    # Service
    'LLMService',
    'LLMResponse',
    'AIAssistant',
    'AIResponse',
    'ask',
    'build_model_chain',
    'get_ai_assistant',
    # Exceptions
    'AIGenerationError',
    'AIInvalidKeyError',
    'AIQuotaExceededError',
    # Utils
    'PROVIDER_MODELS',
    'get_model_string',
    'estimate_cost',
]
