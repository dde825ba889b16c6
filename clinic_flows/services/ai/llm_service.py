"""
Unified LLM service built on LiteLLM.

LiteLLM puts Gemini, OpenAI and other providers behind one completion
interface, so switching models is a matter of the 'provider/model' string.
"""

import time
import logging
from typing import Optional
from dataclasses import dataclass

import litellm
from litellm import acompletion
from litellm.exceptions import (
    AuthenticationError,
    RateLimitError,
    Timeout,
    APIError,
    BadRequestError,
    NotFoundError,
)

from .exceptions import AIGenerationError, AIInvalidKeyError, AIQuotaExceededError
from .utils import estimate_cost, split_model_string

logger = logging.getLogger('clinic_flows.ai')

# Keep LiteLLM quiet
litellm.set_verbose = False


@dataclass
class LLMResponse:
    """LLM service response"""
    text: str
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    time_ms: float
    estimated_cost_usd: float


class LLMService:
    """
    Text generation through LiteLLM.

    Usage:
        service = LLMService()
        response = await service.generate_text_async(
            model="gemini/gemini-2.0-flash",
            prompt="Summarise this appointment...",
            api_key="...",
        )
        print(response.text)
    """

    def __init__(self, timeout: int = 60):
        self.default_temperature = 0.7
        self.default_max_tokens = 1000
        self.default_timeout = timeout

    async def generate_text_async(
        self,
        model: str,
        prompt: str,
        api_key: str,
        system_prompt: Optional[str] = None,
        context: Optional[str] = None,
        temperature: float = None,
        max_tokens: int = None,
        timeout: int = None,
        **kwargs
    ) -> LLMResponse:
        """
        Generate text asynchronously.

        Args:
            model: 'provider/model' (e.g. 'openai/gpt-4o-mini')
            prompt: User prompt
            api_key: Provider API key
            system_prompt: Optional system prompt
            context: Optional auxiliary context, sent as a second system message
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens in the answer
            timeout: Timeout in seconds

        Returns:
            LLMResponse with the generated text and usage metrics

        Raises:
            AIQuotaExceededError: provider quota exceeded
            AIInvalidKeyError: invalid API key
            AIGenerationError: anything else
        """
        temperature = temperature if temperature is not None else self.default_temperature
        max_tokens = max_tokens or self.default_max_tokens
        timeout = timeout or self.default_timeout

        provider, model_name = split_model_string(model)

        logger.info(f"[AI] Starting generation - provider={provider}, model={model_name}")
        start_time = time.time()

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        if context:
            messages.append({"role": "system", "content": f"Context: {context}"})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await acompletion(
                model=f"{provider}/{model_name}",
                messages=messages,
                api_key=api_key,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
                **kwargs
            )

            duration_ms = (time.time() - start_time) * 1000

            usage = getattr(response, 'usage', None)
            input_tokens = usage.prompt_tokens if usage else 0
            output_tokens = usage.completion_tokens if usage else 0
            total_tokens = usage.total_tokens if usage else 0

            text = response.choices[0].message.content or ''
            cost = estimate_cost(provider, model_name, input_tokens, output_tokens)

            logger.info(
                f"[AI] Generation finished - provider={provider}, model={model_name}, "
                f"tokens={total_tokens}, time_ms={duration_ms:.0f}, cost_usd={cost:.6f}"
            )

            return LLMResponse(
                text=text,
                provider=provider,
                model=model_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=total_tokens,
                time_ms=duration_ms,
                estimated_cost_usd=cost,
            )

        except Timeout:
            logger.warning(f"[AI] Timeout - provider={provider}, model={model_name}, timeout={timeout}s")
            raise AIGenerationError(f"Text generation timed out (timeout: {timeout}s)", provider, model_name)

        except AuthenticationError as e:
            logger.error(f"[AI] Auth error - provider={provider}, model={model_name}")
            raise AIInvalidKeyError(str(e), provider, model_name)

        except RateLimitError as e:
            logger.error(f"[AI] Rate limit - provider={provider}, model={model_name}")
            raise AIQuotaExceededError(str(e), provider, model_name)

        except (NotFoundError, BadRequestError, APIError) as e:
            logger.error(
                f"[AI] API error - provider={provider}, model={model_name}, "
                f"error={type(e).__name__}: {str(e)}"
            )
            raise AIGenerationError(str(e), provider, model_name)

        except Exception as e:
            logger.error(
                f"[AI] Unexpected error - provider={provider}, model={model_name}, "
                f"error={type(e).__name__}: {str(e)}"
            )
            raise AIGenerationError(str(e), provider, model_name)
