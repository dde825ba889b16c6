"""
Custom exceptions for the AI service.

AIInvalidKeyError and AIQuotaExceededError concern a provider's key, so the
assistant stops trying that provider's other models when it sees them.
"""


class AIGenerationError(Exception):
    """Generic AI generation error"""

    def __init__(self, message: str, provider: str = None, model: str = None):
        self.message = message
        self.provider = provider
        self.model = model
        super().__init__(self.message)

    def __str__(self):
        if self.provider and self.model:
            return f"[{self.provider}/{self.model}] {self.message}"
        return self.message


class AIInvalidKeyError(AIGenerationError):
    """Invalid or unauthorized API key"""

    def __init__(self, message: str = "Invalid or unauthorized API key", provider: str = None, model: str = None):
        super().__init__(message, provider, model)


class AIQuotaExceededError(AIGenerationError):
    """Provider quota or rate limit exceeded"""

    def __init__(self, message: str = "API quota exceeded", provider: str = None, model: str = None):
        super().__init__(message, provider, model)
