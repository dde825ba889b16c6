"""
Helpers for the AI service: provider catalogue, model strings, costs.
"""

from typing import Optional

# Models per provider, in fallback order (newest first)
PROVIDER_MODELS = {
    'gemini': [
        'gemini-2.0-flash-exp',
        'gemini-2.0-flash',
        'gemini-1.5-flash',
        'gemini-1.5-pro',
        'gemini-pro',
    ],
    'openai': [
        'gpt-4o-mini',
    ],
}

DEFAULT_OPENAI_MODEL = 'gpt-4o-mini'

# Estimated cost per 1K tokens (input/output in USD)
COST_PER_1K_TOKENS = {
    'openai': {
        'gpt-4o-mini': {'input': 0.00015, 'output': 0.0006},
        'gpt-4o': {'input': 0.005, 'output': 0.015},
        'gpt-4': {'input': 0.03, 'output': 0.06},
        'gpt-3.5-turbo': {'input': 0.0005, 'output': 0.0015},
    },
    'gemini': {
        'gemini-2.0-flash': {'input': 0.0001, 'output': 0.0004},
        'gemini-1.5-pro': {'input': 0.00125, 'output': 0.005},
        'gemini-1.5-flash': {'input': 0.000075, 'output': 0.0003},
        'gemini-pro': {'input': 0.00025, 'output': 0.0005},
    },
}


def get_model_string(provider: str, model: str) -> str:
    """
    Return the LiteLLM model string.

    Examples:
        >>> get_model_string('openai', 'gpt-4o-mini')
        'openai/gpt-4o-mini'
        >>> get_model_string('gemini', 'gemini-1.5-pro')
        'gemini/gemini-1.5-pro'
    """
    return f"{provider.lower().strip()}/{model.strip()}"


def split_model_string(model: str) -> tuple:
    """
    Split 'provider/model' into (provider, model).

    A bare model name gets its provider guessed from the name
    (gemini-* is Gemini, everything else OpenAI).
    """
    model = model.strip()
    if '/' in model:
        provider, model_name = model.split('/', 1)
        return normalize_provider_name(provider), model_name
    if model.lower().startswith('gemini'):
        return 'gemini', model
    return 'openai', model


def estimate_cost(provider: str, model: str, input_tokens: int, output_tokens: int) -> float:
    """
    Estimate the USD cost of a call from its token counts.

    Args:
        provider: Provider name
        model: Model name
        input_tokens: Prompt tokens
        output_tokens: Completion tokens

    Returns:
        Estimated cost in USD
    """
    provider_costs = COST_PER_1K_TOKENS.get(normalize_provider_name(provider), {})

    model_costs: Optional[dict] = None
    for m, costs in provider_costs.items():
        if m == model or model.startswith(m):
            model_costs = costs
            break

    if not model_costs:
        # Conservative default
        model_costs = {'input': 0.01, 'output': 0.03}

    input_cost = (input_tokens / 1000) * model_costs['input']
    output_cost = (output_tokens / 1000) * model_costs['output']

    return round(input_cost + output_cost, 6)


def get_api_key_setting(provider: str) -> str:
    """Name of the config setting holding the provider's API key"""
    return f"{normalize_provider_name(provider).upper()}_API_KEY"


def normalize_provider_name(provider: str) -> str:
    aliases = {
        'gpt': 'openai',
        'chatgpt': 'openai',
        'google': 'gemini',
    }

    normalized = provider.lower().strip()
    return aliases.get(normalized, normalized)
