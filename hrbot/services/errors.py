from typing import Optional


class HRBotError(Exception):
    """Base class for relay errors."""


class AuthenticationError(HRBotError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class UpstreamProcessingError(HRBotError):
    """The AI backend failed to produce a usable reply."""


class LLMProviderError(UpstreamProcessingError):
    def __init__(self, operation: str, status_code: int, body: str):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__(f"OpenAI API error ({operation}): {status_code} - {body[:200]}")


class SlackDeliveryError(HRBotError):
    def __init__(self, method: str, error: Optional[str]):
        self.method = method
        self.error = error or "unknown_error"
        super().__init__(f"Slack API {method} failed: {self.error}")
