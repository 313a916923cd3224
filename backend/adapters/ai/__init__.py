# AI Adapters
# Anthropic chat completions

from .anthropic_adapter import (
    SYSTEM_PROMPT,
    AnthropicChatService,
    ChatAuthenticationError,
    ChatConfigurationError,
    ChatProviderError,
    ChatQuotaExceededError,
    ChatRateLimitError,
    ChatServiceError,
    ChatUsage,
    chat_service,
    classify_error,
)

__all__ = [
    "SYSTEM_PROMPT",
    "AnthropicChatService",
    "ChatServiceError",
    "ChatConfigurationError",
    "ChatAuthenticationError",
    "ChatQuotaExceededError",
    "ChatRateLimitError",
    "ChatProviderError",
    "ChatUsage",
    "chat_service",
    "classify_error",
]
